# Ensures `from notes_api...` (and the maintenance scripts) import from backend/ without installing
import sys, os
from pathlib import Path
ROOT = Path(__file__).resolve().parent
PKG_DIR = ROOT / "backend"
if str(PKG_DIR) not in sys.path:
    sys.path.insert(0, str(PKG_DIR))

# Default to test env before notes_api.core.config builds its Settings
os.environ.setdefault("APP_ENV", "test")
os.environ.setdefault("BILLING_TIMEZONE", "UTC")

"""Usage accounting and subscription entitlements for the notes backend."""

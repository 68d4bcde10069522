import os

# Keep the server's module-level state off the real home directory.
os.environ["BOND_STORAGE_DIR"] = ":memory:"

"""OS keyring storage for the Bugly app key."""

"""HTTP client for the Bugly symbol upload endpoints."""

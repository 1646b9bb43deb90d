"""CivicConnect civic issue reporting API."""

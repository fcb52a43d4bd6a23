"""HTTP API for the wardrobe cache."""

"""Forward adapters delivering event copies to targets."""

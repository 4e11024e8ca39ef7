"""User-facing interfaces for Warpdeploy."""

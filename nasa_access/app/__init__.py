"""NASA access layer application package."""

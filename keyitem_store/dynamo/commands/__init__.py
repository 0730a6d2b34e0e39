"""click commands for the store client."""

"""Business logic for the workflow board; blueprints call into these modules."""

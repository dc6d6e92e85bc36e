"""HTTP routes for the portfolio service."""

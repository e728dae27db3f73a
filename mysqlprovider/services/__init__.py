"""Services for the MySQL provider."""

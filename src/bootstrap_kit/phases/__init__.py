"""Built-in phases. Importing this package registers them."""

from . import drizzle_migrations, drizzle_setup

__all__ = ["drizzle_migrations", "drizzle_setup"]

"""Constants, types, errors, configuration and logging setup."""

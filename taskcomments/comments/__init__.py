"""Comment resource — validation, authorization guard and service."""

"""Task Comments Engine — configuration, errors, identity, context, structured logging."""

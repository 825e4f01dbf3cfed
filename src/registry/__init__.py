"""Package-manager specific readers."""

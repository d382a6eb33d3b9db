"""Social data store and synchronization layer."""

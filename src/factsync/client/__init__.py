"""Client side: remote log client, local store and synchronizer."""

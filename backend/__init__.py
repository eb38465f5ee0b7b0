"""Backend access: REST client, repository, config, webhook and weather."""

"""Identity attribute resolution and protocol transcoding for a federated identity provider."""

__version__ = "0.1.0"

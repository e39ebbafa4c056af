"""Search middleware between catalogue clients and a Solr index."""

__version__ = "0.1.0"

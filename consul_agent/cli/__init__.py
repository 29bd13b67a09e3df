"""Command line interface for the Consul agent client."""

"""quorum - stateless swarm consensus for atomic tasks."""

__version__ = "0.1.0"

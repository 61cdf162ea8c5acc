"""depsnap: liveness-pruned source snapshots of Go programs."""

__version__ = "0.1.0"

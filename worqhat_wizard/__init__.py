"""WorqHat setup wizard -- bootstraps a WorqHat integration in an existing project."""

__version__ = "0.4.0"

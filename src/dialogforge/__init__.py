"""DialogForge: branching dialog graphs compiled to Ren'Py scripts."""

__version__ = "0.4.0"

"""rtimage - runtime image builder driving the JDK linker."""

__version__ = "0.1.0"

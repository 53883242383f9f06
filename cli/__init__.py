"""CLI package for the water level monitor and alert relay."""

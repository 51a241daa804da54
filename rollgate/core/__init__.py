"""Control loops and run sequencing."""

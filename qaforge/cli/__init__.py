"""qaforge command-line interface."""

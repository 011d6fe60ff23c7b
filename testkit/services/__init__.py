"""Services built on top of the tools layer."""

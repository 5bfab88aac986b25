"""Bug and feedback reports."""

"""HTTP surface for bug and feedback reports."""

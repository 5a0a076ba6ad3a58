"""``skill-registry`` command line interface."""

"""Rue Tracker front end: controller, session ticker and the `rue` command line."""

"""Experiment execution: simulator command line, batch runner and run summaries."""

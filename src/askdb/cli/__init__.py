"""AskDB command line interface."""

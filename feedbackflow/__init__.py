"""FeedbackFlow: fetch, flatten and analyze discussion feedback."""

__version__ = "1.0.0"

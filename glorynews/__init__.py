"""glorynews: A-League ladder and Perth Glory news aggregation."""

__version__ = "0.3.0"

"""jobplan: execution plan derivation for scraping jobs."""

__version__ = "0.1.0"

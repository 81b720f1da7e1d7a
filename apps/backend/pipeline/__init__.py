"""
Listing enrichment pipeline.

Classifies scraped listings (department, tags, description) with keyword
rules and an AI fallback, and reads JobPosting structured data.
"""

__version__ = "1.0.0"

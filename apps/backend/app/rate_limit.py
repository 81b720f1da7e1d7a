"""
IP-based rate limiting for the ingestion trigger endpoints.
"""
import os
from slowapi import Limiter
from slowapi.util import get_remote_address

# Rate limit: 30 trigger requests per minute unless overridden
RATE_LIMIT_INGEST = os.getenv("RATE_LIMIT_INGEST", "30/minute")

limiter = Limiter(key_func=get_remote_address)

"""
JSON-LD helpers.

Finds Schema.org JobPosting objects in <script type="application/ld+json">
blocks and reads the few fields the job boards populate consistently.
"""

import json
import logging
from typing import Any, Dict, Iterator, List, Optional
from bs4 import BeautifulSoup

logger = logging.getLogger(__name__)


def iter_job_postings(soup: BeautifulSoup) -> Iterator[Dict]:
    """Yield every JobPosting object found in the page's JSON-LD."""
    for script in soup.find_all('script', type='application/ld+json'):
        raw = script.string or script.get_text()
        if not raw:
            continue
        try:
            data = json.loads(raw)
        except (json.JSONDecodeError, TypeError) as e:
            logger.debug(f"Failed to parse JSON-LD: {e}")
            continue

        for item in _flatten_jsonld(data):
            if _is_job_posting(item):
                yield item


def _flatten_jsonld(data: Any) -> List[Dict]:
    """Flatten JSON-LD structure to list of items."""
    items = []

    if isinstance(data, dict):
        if _is_job_posting(data):
            items.append(data)
        elif '@graph' in data and isinstance(data['@graph'], list):
            items.extend([item for item in data['@graph'] if isinstance(item, dict)])
        elif 'itemListElement' in data and isinstance(data['itemListElement'], list):
            for element in data['itemListElement']:
                if isinstance(element, dict) and isinstance(element.get('item'), dict):
                    items.append(element['item'])
    elif isinstance(data, list):
        for item in data:
            items.extend(_flatten_jsonld(item))

    return items


def _is_job_posting(item: Dict) -> bool:
    """Check if JSON-LD item is a JobPosting."""
    item_type = item.get('@type', '')
    if isinstance(item_type, str):
        return 'JobPosting' in item_type
    elif isinstance(item_type, list):
        return any('JobPosting' in str(t) for t in item_type)
    return False


def posting_employer(posting: Dict) -> str:
    """hiringOrganization name, which may be an object or a bare string."""
    org = posting.get('hiringOrganization')
    if isinstance(org, dict):
        return str(org.get('name') or org.get('legalName') or '')
    if isinstance(org, str):
        return org
    return ''


def posting_locality(posting: Dict) -> str:
    """Locality (or region) of the first job location."""
    location = posting.get('jobLocation')
    if isinstance(location, list):
        location = location[0] if location else None
    if isinstance(location, str):
        return location
    if not isinstance(location, dict):
        return ''

    address = location.get('address')
    if isinstance(address, dict):
        return str(address.get('addressLocality') or address.get('addressRegion') or '')
    if isinstance(address, str):
        return address
    return str(location.get('name') or '')


def posting_url(posting: Dict) -> Optional[str]:
    url = posting.get('url')
    return url if isinstance(url, str) and url else None

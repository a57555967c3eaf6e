"""Outbound storefront links."""
from typing import Optional
from urllib.parse import quote, urlencode

STOREFRONT_URL = "https://www.amazon.com/dp/"
PLACEHOLDER_LINK = "#"


def storefront_link(asin: Optional[str], affiliate_tag: Optional[str] = None) -> str:
    """
    Deep link to the storefront product page.

    Args:
        asin: Storefront identifier (ISBN-10 for books)
        affiliate_tag: Optional partner tag appended as ``?tag=``

    Returns:
        Product URL, or the disabled placeholder when there is no identifier
    """
    asin = (asin or "").strip()
    if not asin:
        return PLACEHOLDER_LINK

    url = STOREFRONT_URL + quote(asin, safe="")
    if affiliate_tag:
        url += "?" + urlencode({"tag": affiliate_tag})
    return url


def is_placeholder(link: str) -> bool:
    return link == PLACEHOLDER_LINK

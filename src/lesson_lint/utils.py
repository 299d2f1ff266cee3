"""Utility functions for HTTP link probing."""

import requests

USER_AGENT = "lesson-lint/1.0 (SQL lesson link checker; educational use)"


def probe_url(url: str, timeout: float = 10.0) -> int | str:
    """Probe a URL and return its HTTP status code.

    Tries HEAD first for speed and falls back to GET for sites that
    reject HEAD requests.

    Args:
        url: The URL to check.
        timeout: Seconds to wait for each request.

    Returns:
        The final status code, or the error message if the request failed.
    """
    headers = {"User-Agent": USER_AGENT}
    try:
        response = requests.head(url, headers=headers, timeout=timeout, allow_redirects=True)
        if response.status_code >= 400:
            response = requests.get(url, headers=headers, timeout=timeout, allow_redirects=True, stream=True)
            response.close()
        return response.status_code
    except requests.RequestException as e:
        return str(e) or type(e).__name__

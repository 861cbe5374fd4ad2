import os

import requests


def get_api_url() -> str:
    """
    Returns the backend API URL.
    """
    return os.getenv("API_URL", "http://localhost:8000")


def get_api_headers() -> dict:
    """Admin API key used for every dashboard request."""
    return {"X-API-Key": os.getenv("DASHBOARD_API_KEY", os.getenv("INITIAL_ADMIN_API_KEY", ""))}


def api_get(path: str, **params) -> dict:
    resp = requests.get(f"{get_api_url()}{path}", headers=get_api_headers(), params=params, timeout=10)
    resp.raise_for_status()
    return resp.json()


def api_post(path: str, data: dict) -> dict:
    # Installs download and unpack archives, allow them some time
    resp = requests.post(f"{get_api_url()}{path}", headers=get_api_headers(), data=data, timeout=120)
    resp.raise_for_status()
    return resp.json()


def selection_values(rows) -> list:
    """Bulk form values (``file_path,source_url,name``) for the selected table rows."""
    return [f"{row['file_path']},{row['source_url']},{row['display_name']}" for row in rows]

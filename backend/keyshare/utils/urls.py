from urllib.parse import quote


def build_public_url(base_url: str, path: str) -> str:
    base = base_url.rstrip("/")
    return f"{base}/{quote(path.lstrip('/'), safe='/')}"

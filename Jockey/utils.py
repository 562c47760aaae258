import re
from typing import Dict, Iterable
from urllib.parse import urlsplit

from .models import DEFAULT_PORTS, Endpoint

URL_SCHEME_RE = re.compile(r"^([a-zA-Z][a-zA-Z0-9+.-]*)://")


def parse_fuzzy_url(raw_url: str) -> Endpoint:
  # Assume http when no scheme is given; only http and https are accepted
  if not raw_url or not raw_url.strip():
      raise ValueError("URL cannot be empty")
  url = raw_url.strip()

  found = URL_SCHEME_RE.match(url)
  if found is None:
      url = "http://" + url
  elif found.group(1).lower() not in DEFAULT_PORTS:
      raise ValueError(f"incompatible URL scheme: expected http or https, got {found.group(1).lower()}")

  parsed = urlsplit(url)
  scheme = parsed.scheme.lower()
  if not parsed.hostname:
      raise ValueError(f"invalid URL {raw_url!r}: missing host")
  try:
      port = parsed.port
  except ValueError:
      raise ValueError(f"invalid URL {raw_url!r}: bad port")
  if port is None:
      port = DEFAULT_PORTS[scheme]
  elif port == 0:
      raise ValueError(f"invalid URL {raw_url!r}: port out of range")

  return Endpoint(scheme=scheme, host=parsed.hostname, port=port,
                  path=parsed.path or "/", query=parsed.query)


def parse_header_args(values: Iterable[str]) -> Dict[str, str]:
  # Validate the "Name: value" header list format
  headers = {}
  for i, value in enumerate(values):
      if ':' not in value:
          raise ValueError(f"Header at index {i} must look like 'Name: value', got {value!r}")
      name, _, header_value = value.partition(':')
      name = name.strip()
      if not name:
          raise ValueError(f"Header at index {i} has an empty name")
      headers[name] = header_value.strip()
  return headers

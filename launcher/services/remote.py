from typing import Any, Optional
import logging
import threading

import requests

from launcher.utils.errors import NetworkError, OperationCancelledError
from launcher.version import __version__

logger = logging.getLogger(__name__)
logger.addHandler(logging.NullHandler())

CHUNK_SIZE = 64 * 1024


class RemoteClient:
    """Thin HTTP layer used by the catalog fetch and by mod downloads."""

    def __init__(self, timeout: int = 60, session: Optional[requests.Session] = None) -> None:
        self.timeout = timeout
        self._session = session or requests.Session()
        self._session.headers.setdefault("User-Agent", f"vcmi-launcher/{__version__}")

    def fetch_json(self, url: str) -> Any:
        logger.debug("Fetching %s", url)
        try:
            response = self._session.get(url, timeout=self.timeout)
            response.raise_for_status()
            return response.json()
        except requests.exceptions.RequestException as error:
            # JSON decoding errors are RequestExceptions too
            raise NetworkError(url, f"Request failed: {error}") from error
        except ValueError as error:
            raise NetworkError(url, f"Invalid JSON: {error}") from error

    def download_bytes(
        self,
        url: str,
        progress=None,
        cancel_event: Optional[threading.Event] = None,
    ) -> bytes:
        """Downloads url into memory, reporting each chunk to progress.

        Raises OperationCancelledError as soon as cancel_event is set.
        """
        logger.info("Downloading %s", url)
        chunks = []
        try:
            with self._session.get(url, stream=True, timeout=self.timeout) as response:
                response.raise_for_status()

                total = int(response.headers.get("Content-Length", 0) or 0)
                if progress is not None and total:
                    progress.set_total(total)

                for chunk in response.iter_content(CHUNK_SIZE):
                    if cancel_event is not None and cancel_event.is_set():
                        raise OperationCancelledError(f"Download of {url} cancelled")
                    if not chunk:
                        continue
                    chunks.append(chunk)
                    if progress is not None:
                        progress.add_downloaded(len(chunk))
        except requests.exceptions.RequestException as error:
            raise NetworkError(url, f"Download failed: {error}") from error

        data = b"".join(chunks)
        logger.info("Downloaded %d bytes from %s", len(data), url)
        return data

from __future__ import annotations

import http.client
import logging
import os
import ssl
import subprocess
import threading
import urllib.request
from concurrent.futures import ThreadPoolExecutor
from typing import Callable, List, Optional, Sequence, Tuple

import certifi

from .errors import ModelDownloadError
from .types import DownloadProgressCb

logger = logging.getLogger(__name__)

CHUNK_SIZE = 64 * 1024


def create_progress_cb_factory(combined_progress_cb: DownloadProgressCb) -> Callable[[], DownloadProgressCb]:
    """
    Aggregate the progress of several simultaneous downloads.

    Returns a factory; call it once per download and pass the resulting
    callback to that download. Every report is forwarded to
    `combined_progress_cb` as the overall (received, total) pair. A download
    contributes its total with its first report only.
    """
    lock = threading.Lock()
    totals = {"received": 0, "size": 0}

    def create() -> DownloadProgressCb:
        state = {"first": True, "prev": 0}

        def progress_cb(received: int, total: int) -> None:
            with lock:
                totals["received"] += received - state["prev"]
                state["prev"] = received
                if state["first"]:
                    totals["size"] += total
                    state["first"] = False
                combined_progress_cb(totals["received"], totals["size"])

        return progress_cb

    return create


def _download(url: str, model_path: str, progress_cb: Optional[DownloadProgressCb], timeout_s: int) -> None:
    # Some Python builds lack root certificates; use certifi's bundle.
    ctx = ssl.create_default_context(cafile=certifi.where())
    with urllib.request.urlopen(url, context=ctx, timeout=timeout_s) as r, open(model_path, "wb") as f:
        total = int(r.headers.get("Content-Length") or 0)
        received = 0
        if progress_cb is not None:
            progress_cb(0, total)
        while True:
            chunk = r.read(CHUNK_SIZE)
            if not chunk:
                break
            f.write(chunk)
            received += len(chunk)
            if progress_cb is not None:
                progress_cb(received, max(total, received))
    if total and received != total:
        raise OSError(f"Download of {url} ended after {received} of {total} bytes.")


def _remove_partial(model_path: str) -> None:
    try:
        if os.path.exists(model_path):
            os.remove(model_path)
    except OSError as e:
        logger.warning("Could not remove partial download %s: %s", model_path, e)


def ensure_model_file(
    model_path: str,
    url: str,
    progress_cb: Optional[DownloadProgressCb] = None,
    *,
    timeout_s: int = 30,
) -> str:
    """
    Ensure the model file exists at `model_path`, downloading it from `url`
    if missing.
    """

    if os.path.exists(model_path):
        return model_path

    os.makedirs(os.path.dirname(model_path) or ".", exist_ok=True)

    # 1) Python download (reports progress).
    try:
        _download(url, model_path, progress_cb, timeout_s)
        logger.info("Downloaded %s to %s", url, model_path)
        return model_path
    except (OSError, ValueError, http.client.HTTPException) as e:
        logger.warning("Download of %s failed (%s), trying curl", url, e)
        err = e
        _remove_partial(model_path)

    # 2) Fallback to curl. This often succeeds even when Python's SSL cert store is misconfigured.
    proc = None
    try:
        proc = subprocess.run(
            ["curl", "-L", "-f", "-o", model_path, url],
            check=False,
            stdout=subprocess.PIPE,
            stderr=subprocess.PIPE,
            text=True,
        )
        if proc.returncode == 0 and os.path.exists(model_path) and os.path.getsize(model_path) > 0:
            size = os.path.getsize(model_path)
            if progress_cb is not None:
                progress_cb(size, size)
            return model_path
    except OSError as e:
        logger.warning("curl is not available: %s", e)

    _remove_partial(model_path)

    curl_hint = f'  mkdir -p "{os.path.dirname(model_path) or "."}"\n' f'  curl -L -o "{model_path}" "{url}"\n'
    curl_err = ""
    if proc is not None:
        curl_err = f"\n\ncurl stderr:\n{proc.stderr.strip()}\n"

    raise ModelDownloadError(
        "Missing model file and auto-download failed.\n\n"
        f"Expected model at: {model_path}\n"
        f"URL: {url}\n\n"
        "Download it manually:\n"
        f"{curl_hint}"
        f"{curl_err}"
    ) from err


def ensure_model_files(
    downloads: Sequence[Tuple[str, str]],
    progress_cb: Optional[DownloadProgressCb] = None,
    *,
    timeout_s: int = 30,
) -> List[str]:
    """
    Ensure several (model_path, url) pairs concurrently.

    `progress_cb` receives the combined progress of all downloads.
    """
    create_cb = create_progress_cb_factory(progress_cb) if progress_cb is not None else None
    with ThreadPoolExecutor(max_workers=max(1, len(downloads))) as pool:
        futures = [
            pool.submit(ensure_model_file, path, url, create_cb() if create_cb else None, timeout_s=timeout_s)
            for path, url in downloads
        ]
        return [f.result() for f in futures]

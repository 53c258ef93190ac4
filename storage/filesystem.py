"""
PEM output for one new-csr run.

  <out_key>   RSA PRIVATE KEY      mode 0o600
  <out_csr>   CERTIFICATE REQUEST  mode 0o644

Both files are staged then renamed, key first, so a request never lands
on disk without its key.
"""
from __future__ import annotations

import logging
import stat
from pathlib import Path

from pki.errors import OutputWriteError
from storage.atomic import atomic_write_files

logger = logging.getLogger(__name__)

KEY_MODE = stat.S_IRUSR | stat.S_IWUSR  # 0o600
CSR_MODE = stat.S_IRUSR | stat.S_IWUSR | stat.S_IRGRP | stat.S_IROTH  # 0o644


def write_outputs(out_key: str, key_pem: bytes, out_csr: str, csr_pem: bytes) -> None:
    """Write the private key and the request. Raises OutputWriteError."""
    # The request would replace the key on disk
    if Path(out_key).resolve() == Path(out_csr).resolve():
        raise OutputWriteError(out_csr, ValueError(f"same file as the private key {out_key}"))
    atomic_write_files([
        (Path(out_key), key_pem, KEY_MODE),
        (Path(out_csr), csr_pem, CSR_MODE),
    ])
    logger.info("Private key written to %s", out_key)
    logger.info("Certificate request written to %s", out_csr)

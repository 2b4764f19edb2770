"""
Encryption transforms applied to the persisted payload.

The store treats a cipher as an opaque bytes -> bytes transform. Two are
provided: ``IdentityCipher`` for plaintext files and ``GpgCipher``, which
runs the ``gpg`` binary. Other implementations only need ``encrypt`` and
``decrypt`` methods matching ``CipherProtocol``.
"""

import logging
import os
import subprocess
from typing import Optional, Protocol, runtime_checkable

from .errors import ConfigurationError, DecryptionFailed, EncryptionFailed

logger = logging.getLogger(__name__)


@runtime_checkable
class CipherProtocol(Protocol):
    """Reversible transform between plaintext and stored bytes."""

    def encrypt(self, data: bytes) -> bytes: ...

    def decrypt(self, data: bytes) -> bytes: ...


class IdentityCipher:
    """No-op cipher for plaintext storage."""

    def encrypt(self, data: bytes) -> bytes:
        return data

    def decrypt(self, data: bytes) -> bytes:
        return data


class GpgCipher:
    """
    Cipher backed by the GnuPG command line tool.

    With a ``recipient`` the payload is public-key encrypted to that
    identity. Without one, symmetric (passphrase) encryption is used.
    A ``passphrase`` is passed to gpg through an inherited pipe, never on
    the command line; when omitted gpg asks its agent/pinentry.
    """

    def __init__(
        self,
        recipient: Optional[str] = None,
        *,
        gpg_binary: str = "gpg",
        passphrase: Optional[str] = None,
    ):
        self.recipient = recipient
        self.gpg_binary = gpg_binary
        self._passphrase = passphrase

    @property
    def symmetric(self) -> bool:
        return not self.recipient

    def encrypt(self, data: bytes) -> bytes:
        args = ["--armor"]
        if self.symmetric:
            args.append("--symmetric")
        else:
            args += ["--encrypt", "--recipient", self.recipient]
        result = self._run(args, data)
        if result.returncode != 0:
            raise EncryptionFailed(self._stderr(result) or "gpg encryption failed")
        return result.stdout

    def decrypt(self, data: bytes) -> bytes:
        result = self._run(["--decrypt"], data)
        if result.returncode != 0:
            raise DecryptionFailed(self._stderr(result) or "gpg decryption failed")
        return result.stdout

    def _run(self, args: list[str], data: bytes) -> subprocess.CompletedProcess:
        cmd = [self.gpg_binary, "--quiet", "--yes"]
        pass_fds: tuple[int, ...] = ()
        read_fd = None
        if self._passphrase is not None:
            read_fd, write_fd = os.pipe()
            with os.fdopen(write_fd, "w") as w:
                w.write(self._passphrase)
            cmd += ["--batch", "--pinentry-mode", "loopback",
                    "--passphrase-fd", str(read_fd)]
            pass_fds = (read_fd,)
        cmd += args

        logger.debug("Running %s %s", self.gpg_binary, " ".join(args))
        try:
            return subprocess.run(
                cmd,
                input=data,
                capture_output=True,
                pass_fds=pass_fds,
                check=False,
            )
        except FileNotFoundError:
            raise ConfigurationError(
                f"gpg binary not found: {self.gpg_binary!r}"
            ) from None
        finally:
            if read_fd is not None:
                os.close(read_fd)

    @staticmethod
    def _stderr(result: subprocess.CompletedProcess) -> str:
        return (result.stderr or b"").decode("utf-8", errors="replace").strip()

"""Credential and certificate policy for remote operations.

The transport is the ``git`` executable, so "credentials" are the
environment and ``-c`` settings a clone or push runs with:

- ``ssh_key_from_agent`` (default) authenticates SSH remotes with keys
  already loaded into a running ``ssh-agent`` and never lets git or ssh
  prompt on the terminal.
- ``always_accept`` (default) skips TLS certificate verification for HTTPS
  remotes, a workaround for broken certificate chains on some platforms.
  Pass ``verify_certificates`` for the strict policy.

A failed credential lookup is fatal; nothing is retried.
"""

from __future__ import annotations

import os
import re
from collections.abc import Callable, Mapping
from dataclasses import dataclass, field

from relpkg.core.result import Err, Ok, Result
from relpkg.git.repository import TransportOptions
from relpkg.release.errors import ReleaseError

_SCP_LIKE_RE = re.compile(r"^(?:(?P<user>[^@/]+)@)?(?P<host>[^:/]+):(?!//)")
_SSH_URL_RE = re.compile(r"^(?:git\+)?ssh://(?:(?P<user>[^@/]+)@)?")


@dataclass(frozen=True, slots=True)
class Credentials:
    """Settings handed to git for one remote operation."""

    username: str | None = None
    env: Mapping[str, str] = field(default_factory=dict)


CredentialsCallback = Callable[[str, str | None], Result[Credentials, ReleaseError]]
CertificateCheck = Callable[[str], bool]


def is_ssh_url(url: str) -> bool:
    if _SSH_URL_RE.match(url):
        return True
    if "://" in url:
        return False
    return _SCP_LIKE_RE.match(url) is not None


def infer_username(url: str) -> str | None:
    """Username embedded in a remote URL (``git@github.com:o/r.git`` -> ``git``)."""
    match = _SSH_URL_RE.match(url)
    if match:
        return match.group("user")
    if "://" in url:
        return None
    match = _SCP_LIKE_RE.match(url)
    return match.group("user") if match else None


def ssh_key_from_agent(url: str, username: str | None) -> Result[Credentials, ReleaseError]:
    env = {"GIT_TERMINAL_PROMPT": "0"}
    if not is_ssh_url(url):
        return Ok(Credentials(username=username, env=env))

    if not os.environ.get("SSH_AUTH_SOCK"):
        return Err(
            ReleaseError(
                kind="auth_failed",
                message=f"no SSH agent available for {url}",
                hint="Start ssh-agent and load your key with ssh-add, then retry.",
            )
        )

    env["GIT_SSH_COMMAND"] = "ssh -o BatchMode=yes"
    return Ok(Credentials(username=username, env=env))


def always_accept(url: str) -> bool:
    del url
    return True


def verify_certificates(url: str) -> bool:
    del url
    return False


CERTIFICATE_POLICIES: dict[str, CertificateCheck] = {
    "accept": always_accept,
    "verify": verify_certificates,
}


@dataclass(frozen=True, slots=True)
class RemoteCallbacks:
    """Authentication and certificate decisions for clone and push."""

    credentials: CredentialsCallback = ssh_key_from_agent
    certificate_check: CertificateCheck = always_accept

    def transport_for(self, url: str) -> Result[TransportOptions, ReleaseError]:
        creds = self.credentials(url, infer_username(url))
        if isinstance(creds, Err):
            return creds

        config: tuple[tuple[str, str], ...] = ()
        if self.certificate_check(url):
            config = (("http.sslVerify", "false"),)
        return Ok(TransportOptions(env=dict(creds.value.env), config=config))

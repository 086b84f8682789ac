"""TRUD (NHS Technology Reference data Update Distribution) client.

Logs in with a TRUD account, finds the latest release of the SNOMED CT UK
Drug Extension (RF2: Full, Snapshot & Delta) and downloads its zip file.
The account must be subscribed to that item.
"""

from __future__ import annotations

import logging
import re
from pathlib import Path

import requests

from drug_refset.errors import PreconditionError, ReleaseNotFoundError

logger = logging.getLogger(__name__)

DOWNLOAD_URL_RE = re.compile(r'https://isd\.digital\.nhs\.uk/download[^"]+')
SESSION_COOKIE = "JSESSIONID"


def zip_name_from_url(url: str) -> str:
    """``https://.../foo.zip?token=...`` -> ``foo.zip``"""
    return url.split("?")[0].rstrip("/").split("/")[-1]


class TrudClient:
    """Cookie-authenticated session against the TRUD website."""

    def __init__(
        self,
        email: str,
        password: str,
        base_url: str,
        item_path: str,
        session: requests.Session | None = None,
        timeout: float = 60,
    ) -> None:
        self._email = email
        self._password = password
        self._base_url = base_url.rstrip("/")
        self._item_path = item_path
        self._session = session or requests.Session()
        self._timeout = timeout
        self._logged_in = False

    def login(self) -> None:
        if self._logged_in:
            return
        logger.info("Logging in to TRUD...")
        resp = self._session.post(
            f"{self._base_url}/security/j_spring_security_check",
            data={
                "j_username": self._email,
                "j_password": self._password,
                "commit": "LOG+IN",
            },
            allow_redirects=False,
            timeout=self._timeout,
        )
        if SESSION_COOKIE not in resp.cookies and SESSION_COOKIE not in self._session.cookies:
            raise PreconditionError(
                "TRUD login did not return a session cookie. Check email/password in .env."
            )
        self._logged_in = True
        logger.info("Logged in, and cookie cached.")

    def latest_release_url(self) -> str:
        """URL of the most recent release zip listed on the item page."""
        self.login()
        resp = self._session.get(f"{self._base_url}{self._item_path}", timeout=self._timeout)
        resp.raise_for_status()
        urls = DOWNLOAD_URL_RE.findall(resp.text)
        if not urls:
            raise ReleaseNotFoundError(
                "No release download links found on the TRUD page. "
                "Is the account subscribed to the UK Drug Extension?"
            )
        return urls[0]

    def download_if_not_exists(self, url: str, zip_dir: Path) -> Path:
        """Stream the release zip into ``zip_dir`` unless it is already there."""
        zip_name = zip_name_from_url(url)
        target = zip_dir / zip_name
        logger.info("Target zip file on TRUD is %s", zip_name)
        if target.exists():
            logger.info("The zip file already exists so no need to download again.")
            return target

        logger.info("That zip is not stored locally. Downloading...")
        self.login()
        zip_dir.mkdir(parents=True, exist_ok=True)
        partial = target.with_name(target.name + ".part")
        with self._session.get(url, stream=True, timeout=self._timeout) as resp:
            resp.raise_for_status()
            with open(partial, "wb") as f:
                for chunk in resp.iter_content(chunk_size=1 << 20):
                    f.write(chunk)
        partial.replace(target)
        logger.info("File downloaded.")
        return target

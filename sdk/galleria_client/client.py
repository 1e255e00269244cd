"""Galleria client implementation"""
import mimetypes
import os
from typing import Any, BinaryIO, Callable, Dict, Iterator, Optional, Union

import requests

REFRESH_ENDPOINT = "/api/auth/refresh"

# Endpoints whose 401/403 answers are final: retrying them after a refresh
# cannot change the outcome.
_NO_RETRY_ENDPOINTS = ("/api/auth/signin", "/api/auth/signup", REFRESH_ENDPOINT)


class AuthenticationRequired(Exception):
    """The session could not be refreshed; the user has to sign in again."""


class GalleriaClient:
    """Client for interacting with the Galleria API.

    Authentication is handled transparently:
    - ``signup()`` / ``signin()`` keep the access token in memory; the refresh
      token arrives as an HTTP-only cookie and lives in the session cookie jar.
    - Every API call sends ``Authorization: Bearer <access token>``.
    - A request answered 401 or 403 triggers one ``POST /api/auth/refresh``
      followed by exactly one retry. If the refresh or the retry fails,
      :class:`AuthenticationRequired` is raised.

    Example::

        client = GalleriaClient("http://localhost:3000")
        client.signin("alice", "s3cret")
        gallery = client.create_gallery("Holidays")
        client.upload_image(gallery["id"], "Beach", "beach.jpg")
        for comment in client.iter_pages(client.list_comments, image_id=1):
            print(comment["author"], comment["content"])
    """

    def __init__(self, base_url: str, session: Optional[requests.Session] = None):
        """
        Initialize Galleria client.

        Args:
            base_url: Base URL of the Galleria backend (e.g. ``http://localhost:3000``).
            session:  Optional pre-configured ``requests.Session``.
        """
        self.base_url = base_url.rstrip("/")
        self.session = session or requests.Session()
        self.access_token: Optional[str] = None
        self.username: Optional[str] = None

    # ---------------------------------------------------------------------------
    # Internal request handling
    # ---------------------------------------------------------------------------

    def _send(self, method: str, endpoint: str, **kwargs: Any) -> requests.Response:
        url = f"{self.base_url}{endpoint}"
        headers = dict(kwargs.pop("headers", None) or {})
        if self.access_token:
            headers["Authorization"] = f"Bearer {self.access_token}"
        return self.session.request(method, url, headers=headers, **kwargs)

    def _request(self, method: str, endpoint: str, **kwargs: Any) -> requests.Response:
        """Make an HTTP request, refreshing the session once on 401/403.

        Args:
            method:   HTTP method (``GET``, ``POST``, etc.).
            endpoint: API path (e.g. ``/api/galleries``).
            **kwargs: Forwarded to ``requests.Session.request``.

        Returns:
            The response object.

        Raises:
            AuthenticationRequired: If the session cannot be refreshed or the
                retried request is still rejected.
            requests.HTTPError: On any other non-2xx response.
        """
        response = self._send(method, endpoint, **kwargs)

        if response.status_code in (401, 403) and endpoint not in _NO_RETRY_ENDPOINTS:
            self.refresh()
            response = self._send(method, endpoint, **kwargs)
            if response.status_code in (401, 403):
                self.access_token = None
                raise AuthenticationRequired(
                    f"{method} {endpoint} was rejected after refreshing the session"
                )

        response.raise_for_status()
        return response

    def _store_tokens(self, data: Dict[str, Any]) -> Dict[str, Any]:
        self.access_token = data["accessToken"]
        self.username = data.get("username")
        return data

    # ========== Authentication ==========

    def signup(self, username: str, password: str) -> Dict[str, Any]:
        """Create an account and start a session."""
        response = self._request(
            "POST", "/api/auth/signup", json={"username": username, "password": password}
        )
        return self._store_tokens(response.json())

    def signin(self, username: str, password: str) -> Dict[str, Any]:
        """Start a session for an existing account."""
        response = self._request(
            "POST", "/api/auth/signin", json={"username": username, "password": password}
        )
        return self._store_tokens(response.json())

    def refresh(self) -> Dict[str, Any]:
        """Exchange the refresh cookie for a new access token.

        Raises:
            AuthenticationRequired: If the server rejects the refresh token.
        """
        response = self.session.request("POST", f"{self.base_url}{REFRESH_ENDPOINT}")
        if not response.ok:
            self.access_token = None
            raise AuthenticationRequired(
                f"Session refresh failed with status {response.status_code}"
            )
        return self._store_tokens(response.json())

    def signout(self) -> None:
        """End the session; the server revokes the access token and forgets the refresh cookie."""
        self._send("POST", "/api/auth/signout")
        self.access_token = None
        self.username = None

    def me(self) -> Dict[str, Any]:
        """Return ``{isAuthenticated, userId, username}`` for the current session."""
        return self._request("GET", "/api/auth/me").json()

    # ========== Galleries ==========

    def create_gallery(self, name: str) -> Dict[str, Any]:
        response = self._request("POST", "/api/galleries", json={"name": name})
        return response.json()

    def list_galleries(self, limit: Optional[int] = None, cursor: Optional[str] = None) -> Dict[str, Any]:
        """One page of galleries: ``{items, nextCursor}``."""
        return self._request("GET", "/api/galleries", params=_page_params(limit, cursor)).json()

    def get_gallery(self, gallery_id: int) -> Dict[str, Any]:
        return self._request("GET", f"/api/galleries/{gallery_id}").json()

    def delete_gallery(self, gallery_id: int) -> None:
        """Delete a gallery with its images and comments (owner only)."""
        self._request("DELETE", f"/api/galleries/{gallery_id}")

    # ========== Images ==========

    def upload_image(
        self,
        gallery_id: int,
        title: str,
        file: Union[str, BinaryIO],
        filename: Optional[str] = None,
        content_type: Optional[str] = None,
    ) -> Dict[str, Any]:
        """
        Upload a JPEG or PNG image into a gallery (gallery owner only).

        Args:
            gallery_id:   Target gallery.
            title:        Image title, unique within the gallery.
            file:         Path to the image, or an open binary file.
            filename:     Name sent to the server (defaults to the file's name).
            content_type: MIME type (guessed from ``filename`` when omitted).
        """
        if isinstance(file, str):
            with open(file, "rb") as fh:
                data = fh.read()
            filename = filename or os.path.basename(file)
        else:
            # Read up front so the body can be sent again after a refresh
            data = file.read()
            filename = filename or os.path.basename(getattr(file, "name", "upload"))

        content_type = content_type or mimetypes.guess_type(filename)[0] or "application/octet-stream"
        response = self._request(
            "POST",
            f"/api/galleries/{gallery_id}/images",
            data={"title": title},
            files={"file": (filename, data, content_type)},
        )
        return response.json()

    def list_images(
        self,
        gallery_id: int,
        limit: Optional[int] = None,
        cursor: Optional[str] = None,
    ) -> Dict[str, Any]:
        """One page of a gallery's image metadata: ``{items, nextCursor}``."""
        return self._request(
            "GET", f"/api/galleries/{gallery_id}/images", params=_page_params(limit, cursor)
        ).json()

    def download_image(self, gallery_id: int, image_id: int) -> bytes:
        """Return the stored image bytes."""
        return self._request("GET", f"/api/galleries/{gallery_id}/images/{image_id}").content

    def delete_image(self, gallery_id: int, image_id: int) -> None:
        self._request("DELETE", f"/api/galleries/{gallery_id}/images/{image_id}")

    # ========== Comments ==========

    def add_comment(self, image_id: int, content: str) -> Dict[str, Any]:
        response = self._request("POST", f"/api/comments/{image_id}", json={"content": content})
        return response.json()

    def list_comments(
        self,
        image_id: int,
        limit: Optional[int] = None,
        cursor: Optional[str] = None,
    ) -> Dict[str, Any]:
        """One page of an image's comments: ``{items, nextCursor}`` (requires a session)."""
        return self._request(
            "GET", f"/api/comments/{image_id}", params=_page_params(limit, cursor)
        ).json()

    def delete_comment(self, comment_id: int) -> None:
        """Delete a comment (its author or the gallery owner)."""
        self._request("DELETE", f"/api/comments/{comment_id}")

    # ========== Pagination ==========

    def iter_pages(self, fetch: Callable[..., Dict[str, Any]], **kwargs: Any) -> Iterator[Dict[str, Any]]:
        """
        Yield every item of a listing, following ``nextCursor`` until it is null.

        Args:
            fetch:    A listing method such as ``list_galleries``.
            **kwargs: Forwarded to ``fetch`` (e.g. ``gallery_id=3, limit=50``).

        Example::

            titles = [img["title"] for img in client.iter_pages(client.list_images, gallery_id=3)]
        """
        cursor = kwargs.pop("cursor", None)
        while True:
            page = fetch(cursor=cursor, **kwargs)
            yield from page["items"]
            cursor = page.get("nextCursor")
            if not cursor:
                return


def _page_params(limit: Optional[int], cursor: Optional[str]) -> Dict[str, Any]:
    params: Dict[str, Any] = {}
    if limit is not None:
        params["limit"] = limit
    if cursor:
        params["cursor"] = cursor
    return params

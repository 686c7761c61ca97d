from contextlib import ExitStack
from pathlib import Path
from typing import Any, Dict, List, Optional, Union
import httpx
from todo_api.client.session import MemorySessionStore, Session, SessionStore

PathLike = Union[str, Path]


class ApiError(Exception):
    """Non-2xx response from the Todo API"""

    def __init__(self, status_code: int, message: str):
        self.status_code = status_code
        self.message = message
        super().__init__(f"{status_code}: {message}")


def _error_message(response: httpx.Response) -> str:
    try:
        body = response.json()
    except ValueError:
        return response.text or response.reason_phrase
    if isinstance(body, dict) and body.get("message"):
        return str(body["message"])
    return response.reason_phrase


def _todo_form(
    title: Optional[str] = None,
    description: Optional[str] = None,
    completed: Optional[bool] = None,
    tags: Optional[List[str]] = None
) -> Dict[str, Any]:
    data: Dict[str, Any] = {}
    if title is not None:
        data["title"] = title.strip()
    if description is not None:
        data["description"] = description
    if completed is not None:
        data["completed"] = "true" if completed else "false"
    if tags is not None:
        # A single empty value tells the server to clear the tags
        data["tags[]"] = list(tags) or [""]
    return data


class TodoClient:
    """
    Talks to the Todo API on behalf of one user.

    The token from the session store is attached to every request in
    ``_request``; register/login save the session and logout clears it.
    """

    def __init__(
        self,
        base_url: str = "http://localhost:5000",
        store: Optional[SessionStore] = None,
        http: Optional[httpx.Client] = None,
        api_prefix: str = "/api",
        timeout: float = 10.0
    ):
        self.store = store or MemorySessionStore()
        self.http = http or httpx.Client(base_url=base_url, timeout=timeout)
        self.api_prefix = api_prefix.rstrip("/")

    def __enter__(self) -> "TodoClient":
        return self

    def __exit__(self, *exc_info) -> None:
        self.close()

    def close(self) -> None:
        self.http.close()

    @property
    def session(self) -> Optional[Session]:
        return self.store.load()

    def _auth_headers(self) -> Dict[str, str]:
        session = self.store.load()
        if session is None:
            return {}
        return {"Authorization": f"Bearer {session.token}"}

    def _request(self, method: str, path: str, **kwargs) -> Any:
        headers = dict(kwargs.pop("headers", None) or {})
        headers.update(self._auth_headers())
        response = self.http.request(
            method, f"{self.api_prefix}{path}", headers=headers, **kwargs
        )
        if response.is_error:
            raise ApiError(response.status_code, _error_message(response))
        return response.json()

    def _send_todo(self, method: str, path: str, data: Dict[str, Any],
                   image: Optional[PathLike], file: Optional[PathLike]) -> Dict[str, Any]:
        with ExitStack() as stack:
            files = {}
            for field, path_like in (("image", image), ("file", file)):
                if path_like is not None:
                    upload_path = Path(path_like)
                    files[field] = (upload_path.name, stack.enter_context(open(upload_path, "rb")))
            return self._request(method, path, data=data, files=files or None)

    # Users

    def register(self, name: str, email: str, password: str) -> Session:
        body = self._request("POST", "/users", json={
            "name": name, "email": email, "password": password
        })
        session = Session.model_validate(body)
        self.store.save(session)
        return session

    def login(self, email: str, password: str) -> Session:
        body = self._request("POST", "/users/login", json={
            "email": email, "password": password
        })
        session = Session.model_validate(body)
        self.store.save(session)
        return session

    def logout(self) -> None:
        self.store.clear()

    def me(self) -> Dict[str, Any]:
        return self._request("GET", "/users/me")

    # Todos

    def list_todos(self, page: int = 1, limit: int = 10,
                   search: Optional[str] = None, tag: Optional[str] = None) -> Dict[str, Any]:
        params: Dict[str, Any] = {"page": page, "limit": limit}
        if search:
            params["search"] = search
        if tag:
            params["tag"] = tag
        return self._request("GET", "/todos", params=params)

    def get_todo(self, todo_id: int) -> Dict[str, Any]:
        return self._request("GET", f"/todos/{todo_id}")

    def create_todo(
        self,
        title: str,
        description: Optional[str] = None,
        completed: Optional[bool] = None,
        tags: Optional[List[str]] = None,
        image: Optional[PathLike] = None,
        file: Optional[PathLike] = None
    ) -> Dict[str, Any]:
        data = _todo_form(title, description, completed, tags)
        return self._send_todo("POST", "/todos", data, image, file)

    def update_todo(
        self,
        todo_id: int,
        title: Optional[str] = None,
        description: Optional[str] = None,
        completed: Optional[bool] = None,
        tags: Optional[List[str]] = None,
        image: Optional[PathLike] = None,
        file: Optional[PathLike] = None
    ) -> Dict[str, Any]:
        data = _todo_form(title, description, completed, tags)
        return self._send_todo("PUT", f"/todos/{todo_id}", data, image, file)

    def delete_todo(self, todo_id: int) -> Dict[str, Any]:
        return self._request("DELETE", f"/todos/{todo_id}")

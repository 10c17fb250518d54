"""ProofAge API resources: workspace and verifications."""

from typing import TYPE_CHECKING, Any, Dict, Optional

if TYPE_CHECKING:
    from proofage.client import ProofAgeClient


def _json(response: Any) -> Optional[Any]:
    if not response.content:
        return None
    return response.json()


class WorkspaceResource:
    """Workspace information for the configured API key."""

    def __init__(self, client: "ProofAgeClient"):
        self.client = client

    def get(self) -> Optional[Dict[str, Any]]:
        """Get workspace information."""
        return _json(self.client.make_request("GET", "workspace"))

    def get_consent(self) -> Optional[Dict[str, Any]]:
        """Get consent information."""
        return _json(self.client.make_request("GET", "consent"))


class VerificationResource:
    """
    Verification lifecycle calls.

    ``create`` and ``find`` work without an id; the remaining calls act on the
    verification id passed at construction.
    """

    def __init__(self, client: "ProofAgeClient", verification_id: Optional[str] = None):
        self.client = client
        self.verification_id = verification_id

    def _require_id(self) -> str:
        if not self.verification_id:
            raise ValueError("Verification ID is required")
        return self.verification_id

    def create(self, data: Dict[str, Any]) -> Optional[Dict[str, Any]]:
        """Create a new verification."""
        return _json(self.client.make_request("POST", "verifications", data))

    def find(self, verification_id: str) -> Optional[Dict[str, Any]]:
        """Get a verification by id."""
        return _json(self.client.make_request("GET", f"verifications/{verification_id}"))

    def get(self) -> Optional[Dict[str, Any]]:
        """Get the verification this resource was created for."""
        return self.find(self._require_id())

    def accept_consent(self, data: Dict[str, Any]) -> Optional[Dict[str, Any]]:
        """Accept consent for the verification."""
        verification_id = self._require_id()
        return _json(self.client.make_request("POST", f"verifications/{verification_id}/consent", data))

    def upload_media(self, data: Dict[str, Any]) -> Optional[Dict[str, Any]]:
        """
        Upload media for the verification.

        A ``file`` entry in ``data`` is sent as a multipart attachment; the
        remaining entries are sent as form fields.
        """
        verification_id = self._require_id()

        form_data = dict(data)
        files = {}
        if "file" in form_data:
            files["file"] = form_data.pop("file")

        return _json(
            self.client.make_request(
                "POST",
                f"verifications/{verification_id}/media",
                form_data,
                files,
            )
        )

    def submit(self) -> Optional[Dict[str, Any]]:
        """Submit the verification for processing."""
        verification_id = self._require_id()
        return _json(self.client.make_request("POST", f"verifications/{verification_id}/submit"))

"""Azure DevOps REST API client.

The client issues exactly one GET per call through a shared
``requests.Session``. ``invoke`` returns the response body on success and
None on a non-success status; typed helpers decode the ``value`` list of a
response into record objects and raise :class:`AzureDevOpsAPIError` when the
data could not be retrieved.
"""

import base64
import json
import logging
from typing import Any, Optional
from urllib.parse import quote, urlencode

import requests
from requests.exceptions import RequestException

from ..config.schema import API_VERSION
from ..models.records import (
    Build,
    BuildArtifact,
    ClassificationNode,
    Commit,
    Project,
    PullRequest,
    Push,
    Repository,
    Team,
    TeamFieldValue,
    TeamMember,
)

logger = logging.getLogger(__name__)

# Upper bound used when enumerating the latest run of every build definition
DEFINITION_SCAN_TOP = 5000


class AzureDevOpsAPIError(Exception):
    """Raised when a REST call fails or returns unusable data."""


class ResourceUnavailableError(AzureDevOpsAPIError):
    """Raised when the API answered with a non-success status."""


class AzureDevOpsClient:
    """Thin synchronous client for the Azure DevOps REST API."""

    def __init__(
        self,
        token: Optional[str] = None,
        timeout: float = 30.0,
        api_version: str = API_VERSION,
    ) -> None:
        """Initialize the client.

        Args:
            token: Personal access token, or None for anonymous access.
            timeout: Per-request timeout in seconds.
            api_version: REST ``api-version`` appended to every query.
        """
        self.token = token
        self.timeout = timeout
        self.api_version = api_version
        self._session: Optional[requests.Session] = None

    def __enter__(self) -> "AzureDevOpsClient":
        return self

    def __exit__(self, *args: Any) -> None:
        self.close()

    def close(self) -> None:
        if self._session is not None:
            self._session.close()
            self._session = None

    @property
    def session(self) -> requests.Session:
        if self._session is None:
            self._session = self._create_session()
        return self._session

    def _create_session(self) -> requests.Session:
        """Create an HTTP session with PAT authentication headers.

        No retry adapter is mounted: every call is attempted once.
        """
        session = requests.Session()
        session.headers.update(
            {
                "Accept": "application/json",
                "User-Agent": "DevOps-Analytics/1.0",
            }
        )
        if self.token:
            credentials = base64.b64encode(f":{self.token}".encode()).decode()
            session.headers["Authorization"] = f"Basic {credentials}"
        return session

    def build_path(self, resource: str, params: Optional[dict[str, Any]] = None) -> str:
        """Build a relative path with a query string, omitting None parameters."""
        query = {key: value for key, value in (params or {}).items() if value is not None}
        query["api-version"] = self.api_version
        return f"{resource}?{urlencode(query, safe='$/')}"

    def invoke(self, base_url: str, relative_path: str) -> Optional[str]:
        """Issue a GET against ``<base_url>/<relative_path>``.

        Returns:
            The response body, or None when the status is not a success.

        Raises:
            AzureDevOpsAPIError: On connection errors and timeouts.
        """
        url = f"{base_url.rstrip('/')}/{relative_path.lstrip('/')}"
        logger.debug(f"GET {url}")
        try:
            response = self.session.get(url, timeout=self.timeout)
        except RequestException as e:
            raise AzureDevOpsAPIError(f"Request to {url} failed: {e}") from e

        if not response.ok:
            logger.warning(f"GET {url} returned HTTP {response.status_code} {response.reason}")
            return None
        return response.text

    def get_json(self, base_url: str, relative_path: str) -> dict[str, Any]:
        """Fetch and decode a JSON object.

        Raises:
            ResourceUnavailableError: On a non-success status or an empty body.
            AzureDevOpsAPIError: On transport errors or malformed JSON.
        """
        body = self.invoke(base_url, relative_path)
        if not body:
            raise ResourceUnavailableError(f"No data returned for {relative_path.split('?')[0]}")
        try:
            payload = json.loads(body)
        except json.JSONDecodeError as e:
            raise AzureDevOpsAPIError(f"Malformed JSON from {relative_path.split('?')[0]}: {e}") from e
        if not isinstance(payload, dict):
            raise AzureDevOpsAPIError(f"Unexpected payload type {type(payload).__name__}")
        return payload

    def _get_values(self, base_url: str, relative_path: str) -> list[dict[str, Any]]:
        payload = self.get_json(base_url, relative_path)
        return [item for item in payload.get("value") or [] if isinstance(item, dict)]

    # Collection level

    def get_projects(self, collection_url: str) -> list[Project]:
        path = self.build_path("_apis/projects")
        return [Project.from_api(item) for item in self._get_values(collection_url, path)]

    def get_teams(self, collection_url: str) -> list[Team]:
        path = self.build_path("_apis/teams")
        return [Team.from_api(item) for item in self._get_values(collection_url, path)]

    def get_team_members(self, collection_url: str, team: Team) -> list[TeamMember]:
        resource = (
            f"_apis/projects/{quote(team.project_name)}/teams/{quote(team.name)}/members"
        )
        path = self.build_path(resource)
        return [TeamMember.from_api(item) for item in self._get_values(collection_url, path)]

    # Project level

    def get_repositories(self, project_url: str) -> list[Repository]:
        path = self.build_path("_apis/git/repositories")
        return [Repository.from_api(item) for item in self._get_values(project_url, path)]

    def get_area_paths(self, project_url: str, depth: int = 100) -> ClassificationNode:
        path = self.build_path("_apis/wit/classificationnodes/areas", {"$depth": depth})
        return ClassificationNode.from_api(self.get_json(project_url, path))

    def get_team_field_values(self, project_url: str, team_name: str) -> list[TeamFieldValue]:
        path = self.build_path(f"{quote(team_name)}/_apis/work/teamsettings/teamfieldvalues")
        payload = self.get_json(project_url, path)
        return [TeamFieldValue.from_api(item) for item in payload.get("values") or []]

    def get_commits(
        self,
        project_url: str,
        repository_name: str,
        top: int,
        branch: Optional[str] = None,
        from_date: Optional[str] = None,
    ) -> list[Commit]:
        params = {
            "searchCriteria.$top": top,
            "searchCriteria.itemVersion.version": branch,
            "searchCriteria.fromDate": from_date,
        }
        path = self.build_path(f"_apis/git/repositories/{quote(repository_name)}/commits", params)
        return [Commit.from_api(item) for item in self._get_values(project_url, path)]

    def get_pushes(
        self,
        project_url: str,
        repository_name: str,
        top: int,
        ref_name: Optional[str] = None,
        from_date: Optional[str] = None,
    ) -> list[Push]:
        params = {
            "$top": top,
            "searchCriteria.refName": ref_name,
            "searchCriteria.fromDate": from_date,
        }
        path = self.build_path(f"_apis/git/repositories/{quote(repository_name)}/pushes", params)
        return [Push.from_api(item) for item in self._get_values(project_url, path)]

    def get_builds(
        self,
        project_url: str,
        top: int,
        from_date: Optional[str] = None,
        definition_id: Optional[str] = None,
        max_per_definition: Optional[int] = None,
    ) -> list[Build]:
        params = {
            "definitions": definition_id,
            "$top": top,
            "maxBuildsPerDefinition": max_per_definition,
            "minTime": from_date,
        }
        path = self.build_path("_apis/build/builds", params)
        return [Build.from_api(item) for item in self._get_values(project_url, path)]

    def get_build_artifacts(self, project_url: str, build_id: str) -> list[BuildArtifact]:
        path = self.build_path(f"_apis/build/builds/{quote(str(build_id))}/artifacts")
        return [BuildArtifact.from_api(item) for item in self._get_values(project_url, path)]

    def get_pull_requests(
        self,
        project_url: str,
        repository_name: str,
        target_ref_name: str,
        top: int,
        status: str = "completed",
    ) -> list[PullRequest]:
        params = {
            "searchCriteria.status": status,
            "searchCriteria.targetRefName": target_ref_name,
            "$top": top,
        }
        path = self.build_path(
            f"_apis/git/repositories/{quote(repository_name)}/pullrequests", params
        )
        return [PullRequest.from_api(item) for item in self._get_values(project_url, path)]

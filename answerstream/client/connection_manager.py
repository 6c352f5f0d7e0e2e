"""
Server reachability checks and model discovery.

Learning Points:
- The checks reuse the stream consumer's requests.Session, so the TCP
  connection opened for the health check is pooled for the first answer
- Servers differ: vLLM exposes /health, most OpenAI-compatible services
  only expose /v1/models, so the check falls back from one to the other
- A 503 from /health means "starting up" and is not treated as failure
"""

import logging
from typing import List, Optional

import requests
from rich.console import Console

from .config import ClientConfig

logger = logging.getLogger(__name__)

HEALTH_PATH = "/health"
MODELS_PATH = "/v1/models"
CHECK_TIMEOUT = 10.0


class ConnectionManager:
    """Checks the server and lists its models.

    Args:
        config: Client configuration (base URL, API key)
        http: Session to reuse; a new one is created when omitted
        console: Rich console for status lines
    """

    def __init__(self, config: ClientConfig, http: Optional[requests.Session] = None,
                 console: Optional[Console] = None):
        self.config = config
        self.http = http or requests.Session()
        self.console = console or Console()

        api_key = config.resolved_api_key()
        if api_key and "Authorization" not in self.http.headers:
            self.http.headers["Authorization"] = f"Bearer {api_key}"

    @property
    def base_url(self) -> str:
        return self.config.server.base_url

    def _get(self, path: str) -> requests.Response:
        return self.http.get(f"{self.base_url}{path}", timeout=CHECK_TIMEOUT)

    def test_connection(self) -> bool:
        """Test connection using the health endpoint, then the models endpoint.

        Returns:
            bool: True if the server is reachable and healthy
        """
        try:
            response = self._get(HEALTH_PATH)
            if response.status_code == 200:
                self.console.print(f"[green]✓[/green] Connected to server at {self.base_url}")
                return True
            if response.status_code == 503:
                self.console.print(f"[yellow]⚠[/yellow] Server is starting up at {self.base_url} (status 503)")
                return True

            logger.debug("%s returned %d, trying %s", HEALTH_PATH, response.status_code, MODELS_PATH)
            models_response = self._get(MODELS_PATH)
            if models_response.status_code == 200:
                self.console.print(f"[green]✓[/green] Connected to OpenAI-compatible server at {self.base_url}")
                return True

            self.console.print(f"[yellow]⚠[/yellow] Server responded with status {models_response.status_code}")
            return False

        except requests.exceptions.RequestException as e:
            logger.warning("Connection check failed: %s", e)
            self.console.print(f"[red]❌[/red] Cannot connect to server: {e}")
            self.console.print(f"Make sure the server is running at {self.base_url}")
            return False

    def get_available_models(self) -> List[str]:
        """Query the OpenAI-compatible /v1/models endpoint.

        Response format:
        {
            "object": "list",
            "data": [{"id": "qwen-vl-max", "object": "model", ...}]
        }

        Returns:
            List[str]: Model IDs, or an empty list if the query fails
        """
        try:
            response = self._get(MODELS_PATH)
            if response.status_code != 200:
                self.console.print(f"[yellow]⚠[/yellow] Could not fetch models: HTTP {response.status_code}")
                return []
            data = response.json()
            return [model['id'] for model in data.get('data', [])]

        except (requests.exceptions.RequestException, ValueError, KeyError, TypeError, AttributeError) as e:
            logger.warning("Model discovery failed: %s", e)
            self.console.print(f"[yellow]⚠[/yellow] Could not fetch models: {e}")
            return []

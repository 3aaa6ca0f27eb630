"""Fallback "coming soon" site on the proxy's backend port."""
import time
from enum import Enum
from pathlib import Path
from typing import Optional

import requests
from jinja2 import BaseLoader, Environment

from homeport.core.config import HomeportConfig
from homeport.core.errors import PlaceholderError
from homeport.core.logger import get_logger
from homeport.services.docker.runtime import ContainerRuntime

logger = get_logger(__name__)

DOCKERFILE_TEMPLATE = """\
FROM nginx:alpine

RUN echo 'server { listen 80; root /usr/share/nginx/html; index index.html; location / { try_files $uri $uri/ =404; } }' > /etc/nginx/conf.d/default.conf

COPY index.html /usr/share/nginx/html/

HEALTHCHECK --interval=30s --timeout=3s --start-period=5s --retries=3 \\
  CMD wget --no-verbose --tries=1 --spider http://localhost || exit 1

EXPOSE 80

CMD ["nginx", "-g", "daemon off;"]
"""

INDEX_TEMPLATE = """\
<!DOCTYPE html>
<html lang="en">
<head>
  <meta charset="UTF-8">
  <meta name="viewport" content="width=device-width, initial-scale=1.0">
  <title>{{ title }}</title>
  <style>
    body {
      font-family: -apple-system, BlinkMacSystemFont, "Segoe UI", Roboto, Arial, sans-serif;
      background: linear-gradient(135deg, #667eea 0%, #764ba2 100%);
      min-height: 100vh;
      margin: 0;
      display: flex;
      align-items: center;
      justify-content: center;
      color: white;
    }
    .container { text-align: center; max-width: 600px; padding: 20px; }
    h1 { font-size: 3em; margin-bottom: 20px; }
    .info { background: rgba(255, 255, 255, 0.15); border-radius: 8px; padding: 15px; margin-top: 30px; }
  </style>
</head>
<body>
  <div class="container">
    <h1>{{ title }}</h1>
    <p>Your home server proxy is up and serving TLS.</p>
    <div class="info">
      Deploy your application on port {{ backend_port }} and it will replace this page.
    </div>
  </div>
</body>
</html>
"""


class PlaceholderOutcome(Enum):
    HOST_SERVICE = "host-service"
    ALREADY_RUNNING = "already-running"
    STARTED = "started"


class PlaceholderService:
    """
    Keep something listening on the backend port until the real app is deployed.

    Priority: a host-native service beats an existing placeholder, which
    beats starting a new placeholder.
    """

    def __init__(self, runtime: ContainerRuntime, config: HomeportConfig):
        self.runtime = runtime
        self.config = config
        self.port = config.backend_port
        self.name = config.placeholder_container
        self.jinja_env = Environment(
            loader=BaseLoader(),
            autoescape=False,
            trim_blocks=True,
            lstrip_blocks=True,
        )

    def ensure_running(self) -> PlaceholderOutcome:
        """Make sure the backend port answers.

        Raises:
            PlaceholderError: image build or container start failed
        """
        if self.runtime.host_process_on_port(self.port):
            logger.info(f"✓ A host service is already listening on port {self.port}")
            if self.runtime.exists(self.name):
                logger.info("Removing the placeholder service...")
                self.runtime.stop_and_remove(self.name)
            return PlaceholderOutcome.HOST_SERVICE

        if self.runtime.is_running(self.name) and self.runtime.port_bound(self.name, [80]):
            logger.info("✓ Placeholder service is already running")
            return PlaceholderOutcome.ALREADY_RUNNING

        logger.info(f"Starting placeholder service on port {self.port}...")
        logger.info("It steps aside once your application listens on this port")

        context_dir = self.prepare_files()
        self.build_image(context_dir)
        self.start_container()
        self.check_health()
        return PlaceholderOutcome.STARTED

    def prepare_files(self) -> Path:
        """Render the Dockerfile and index page into the build context."""
        context_dir = self.config.placeholder_dir
        context_dir.mkdir(parents=True, exist_ok=True)

        (context_dir / "Dockerfile").write_text(self.render(DOCKERFILE_TEMPLATE))
        (context_dir / "index.html").write_text(self.render(INDEX_TEMPLATE))
        logger.debug(f"Placeholder build context written to {context_dir}")
        return context_dir

    def render(self, template: str) -> str:
        return self.jinja_env.from_string(template).render(
            title="Coming soon",
            backend_port=self.port,
        )

    def build_image(self, context_dir: Path) -> None:
        logger.info("Building placeholder image...")
        result = self.runtime.build_image(self.config.placeholder_image, context_dir)
        if not result.ok:
            raise PlaceholderError(f"Placeholder image build failed: {result.output}")
        logger.info("✓ Placeholder image built")

    def start_container(self) -> None:
        self.runtime.stop_and_remove(self.name)
        network = self.runtime.ensure_network(self.config.placeholder_network)

        result = self.runtime.run_container(
            self.name,
            self.config.placeholder_image,
            ports=[f"{self.port}:80"],
            network=network,
        )
        if not result.ok:
            raise PlaceholderError(f"Placeholder container failed to start: {result.output}")
        logger.info(f"✓ Placeholder service started on port {self.port}")

    def check_health(self) -> Optional[int]:
        """Probe the backend port once. Non-200 is a warning, not a failure."""
        if self.config.startup_grace:
            time.sleep(self.config.startup_grace)

        url = f"http://localhost:{self.port}"
        try:
            response = requests.get(url, timeout=self.config.http_timeout)
        except requests.RequestException as e:
            logger.warning(f"⚠ Placeholder not answering yet at {url}: {e}")
            return None

        if response.status_code == 200:
            logger.info("✓ Placeholder service responds")
        else:
            logger.warning(f"⚠ Placeholder still starting (HTTP {response.status_code})")
        return response.status_code

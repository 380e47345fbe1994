"""Web front end actions: nginx site configuration and TLS certificates."""

from __future__ import annotations

import logging
from dataclasses import dataclass
from pathlib import Path
from typing import List, Optional

import psutil

from .base import ActionContext, ProvisioningAction
from .registry import ActionKind, register

logger = logging.getLogger(__name__)

SITES_AVAILABLE = Path("/etc/nginx/sites-available")
SITES_ENABLED = Path("/etc/nginx/sites-enabled")

_PHP_SITE = """
server {{
    listen 80;
    server_name {server_name};
    root {root};

    index index.php index.html index.htm;

    location / {{
        try_files $uri $uri/ =404;
    }}

    location ~ \\.php$ {{
        include snippets/fastcgi-php.conf;
        fastcgi_pass unix:/run/php/php{php_version}-fpm.sock;
        fastcgi_param SCRIPT_FILENAME $document_root$fastcgi_script_name;
        include fastcgi_params;
    }}
}}
"""

_PROXY_SITE = """
server {{
    listen 80;
    server_name {server_name};

    location / {{
        proxy_pass http://localhost:{port};
        proxy_http_version 1.1;
        proxy_set_header Upgrade $http_upgrade;
        proxy_set_header Connection 'upgrade';
        proxy_set_header Host $host;
        proxy_cache_bypass $http_upgrade;
    }}
}}
"""


@dataclass
class NginxSite:
    """Parameters of the single site served by nginx."""

    app_type: str  # "php" | "nodejs"
    root: Path
    domain: str = ""
    php_version: str = "8.2"
    node_port: int = 3000

    @property
    def name(self) -> str:
        return self.domain or "app"

    def render(self) -> str:
        server_name = self.domain or "_"
        if self.app_type == "php":
            return _PHP_SITE.format(
                server_name=server_name,
                root=self.root,
                php_version=self.php_version,
            )
        return _PROXY_SITE.format(server_name=server_name, port=self.node_port)


def free_port(port: int) -> List[int]:
    """Terminate local processes listening on ``port``; return their pids.

    Processes we are not allowed to inspect or signal are logged and left
    alone, matching the best-effort ``kill ... || true`` of a shell script.
    """
    pids = set()
    try:
        connections = psutil.net_connections(kind="inet")
    except psutil.AccessDenied:
        logger.warning("Not permitted to list sockets; port %d left as is", port)
        return []
    for conn in connections:
        if conn.status == psutil.CONN_LISTEN and conn.laddr and conn.laddr.port == port and conn.pid:
            pids.add(conn.pid)

    processes = []
    for pid in sorted(pids):
        try:
            process = psutil.Process(pid)
            process.terminate()
            processes.append(process)
        except psutil.NoSuchProcess:
            continue
        except psutil.AccessDenied:
            logger.warning("Not permitted to stop pid %d holding port %d", pid, port)
    if processes:
        _, alive = psutil.wait_procs(processes, timeout=5)
        for process in alive:
            process.kill()
    return [p.pid for p in processes]


@register(ActionKind.CONFIGURE_NGINX)
class ConfigureNginx(ProvisioningAction):

    description = "Configure Nginx"

    def __init__(
        self,
        site: NginxSite,
        sites_available: Path = SITES_AVAILABLE,
        sites_enabled: Path = SITES_ENABLED,
        http_port: int = 80,
    ) -> None:
        self.site = site
        self.sites_available = Path(sites_available)
        self.sites_enabled = Path(sites_enabled)
        self.http_port = http_port

    @property
    def config_path(self) -> Path:
        return self.sites_available / self.site.name

    def execute(self, context: ActionContext) -> None:
        self.config_path.write_text(self.site.render(), encoding="utf-8")
        logger.info("Wrote nginx site %s", self.config_path)
        context.run_all(
            f"sudo ln -sf {self.config_path} {self.sites_enabled}/",
            f"sudo rm -f {self.sites_enabled / 'default'}",
            "sudo nginx -t",
        )
        context.run("sudo systemctl stop nginx")
        free_port(self.http_port)
        context.run("sudo systemctl restart nginx")


@register(ActionKind.REQUEST_CERTIFICATE)
class RequestCertificate(ProvisioningAction):
    """Install certbot and obtain a Let's Encrypt certificate for the domain."""

    def __init__(self, domain: str, email: Optional[str] = None, http_port: int = 80) -> None:
        if not domain:
            raise ValueError("A domain is required to request a certificate")
        self.domain = domain
        self.email = email or f"admin@{domain}"
        self.http_port = http_port
        self.description = f"Request Let's Encrypt certificate for {domain}"

    def execute(self, context: ActionContext) -> None:
        context.run_all(
            "sudo apt-get install -y -qq certbot",
            "sudo apt-get install -y -qq python3-certbot-nginx",
            f"sudo certbot --nginx -n -d {self.domain} --agree-tos "
            f"--email {self.email} --redirect",
        )
        context.run("sudo systemctl stop nginx")
        free_port(self.http_port)
        context.run("sudo systemctl restart nginx")

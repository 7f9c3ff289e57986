"""Constants shared by the conversion pipeline."""

import re

# Left in compose output; the runtime orchestrator swaps in the live bridging address
NAT_GATEWAY_PLACEHOLDER = "${NAT_GATEWAY_IP}"

NATIVE_OS = "windows"
DEFAULT_OS = "linux"

# Host ports are drawn from [HOST_PORT_MIN, HOST_PORT_MAX)
HOST_PORT_MIN = 60000
HOST_PORT_MAX = 65000

DEFAULT_RESTART = "on-failure"

# K8s kinds that produce compose services
WORKLOAD_KINDS = ("Deployment", "Job")

# K8s kinds indexed for later lookups (no compose service of their own)
SERVICE_KIND = "Service"

# Workload key of the translator's own control-plane chart. Its services are
# grouped under CONTROL_PLANE_SERVICE_KEY and lose the "<key>-" name prefix.
CONTROL_PLANE_WORKLOAD = "crosspose"
CONTROL_PLANE_SERVICE_KEY = "jobs"

REPORT_FILE = "conversion-report.yaml"
CONFIGMAPS_DIR = "configmaps"
SECRETS_DIR = "secrets"
K8S_DATA_DIR = "..data"

# YAML document separator (a line made of --- only)
_DOC_SEPARATOR_RE = re.compile(r'^---\s*$', re.MULTILINE)

# In-cluster DNS names (default namespace) remapped to published host ports
_K8S_DEFAULT_DNS_RE = re.compile(
    r'(?P<svc>[A-Za-z0-9-]+)\.default\.svc\.cluster\.local(?::(?P<port>\d+))?',
    re.IGNORECASE,
)

# Loopback aliases a Windows container cannot use to reach the Linux VM
LOOPBACK_ALIASES = ("host.docker.internal", "localhost", "127.0.0.1")

# Characters that are not allowed in a path segment on either OS
_INVALID_SEGMENT_CHARS = set('<>:"/\\|?*') | {chr(c) for c in range(32)}

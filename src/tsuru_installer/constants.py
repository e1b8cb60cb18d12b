"""Shared constants for the tsuru installer."""

CA_CERT_FILE = "ca.pem"
CLIENT_CERT_FILE = "cert.pem"
CLIENT_KEY_FILE = "key.pem"
TLS_FILES = (CA_CERT_FILE, CLIENT_CERT_FILE, CLIENT_KEY_FILE)

DEFAULT_MONGO_PORT = 27017
DEFAULT_REDIS_PORT = 6379
DEFAULT_PLANB_PORT = 80
DEFAULT_REGISTRY_PORT = 5000
DEFAULT_API_PORT = 8080

DEFAULT_CERTS_ROOT = "/certs"
HOST_CERTS_DIR = "/etc/docker/certs.d"
REGISTRY_DATA_DIR = "/var/lib/registry"

DEFAULT_DOCKER_TIMEOUT = 60.0
WILDCARD_DNS_SUFFIX = "nip.io"

"""Static server constants."""

PROJECT_NAME = "AIGP Node"
VERSION = "0.1.0"
SCHEMA_VERSION = "v1"

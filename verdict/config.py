#!/usr/bin/env python3
# -*- coding: utf-8 -*-
"""Configuration constants and settings for verdict."""

import os
import pathlib
from typing import List

# Configuration
ROOT = pathlib.Path(os.getcwd()).resolve()
VERDICT_DIR = ROOT / ".verdict"
LOGS_DIR = VERDICT_DIR / "logs"
LOG_RETENTION_LIMIT = int(os.getenv("VERDICT_LOG_RETENTION", "10"))
DEBUG = os.getenv("VERDICT_DEBUG", "").lower() in ("1", "true", "yes")

# Project-relative artifact locations
CAPABILITY_CACHE_FILE = os.getenv("VERDICT_CAPABILITY_CACHE_FILE", "ai/capabilities.json")
CAPABILITY_CACHE_VERSION = "1.0.0"
VERIFICATION_DIR = os.getenv("VERDICT_VERIFICATION_DIR", "ai/verification")
STORE_VERSION = "2.0.0"

# In-memory capability tier lifetime (seconds)
CAPABILITY_MEMORY_TTL_S = float(os.getenv("VERDICT_CAPABILITY_TTL", "60"))

# Timeouts (milliseconds)
CHECK_TIMEOUT_MS = int(os.getenv("VERDICT_CHECK_TIMEOUT_MS", "300000"))  # 5 minutes per automated check
COMMAND_TIMEOUT_MS = int(os.getenv("VERDICT_COMMAND_TIMEOUT_MS", "60000"))
TEST_TIMEOUT_MS = int(os.getenv("VERDICT_TEST_TIMEOUT_MS", "60000"))
E2E_TIMEOUT_MS = int(os.getenv("VERDICT_E2E_TIMEOUT_MS", "120000"))
HTTP_TIMEOUT_MS = int(os.getenv("VERDICT_HTTP_TIMEOUT_MS", "30000"))
AI_TIMEOUT_MS = int(os.getenv("VERDICT_AI_TIMEOUT_MS", "300000"))
GIT_TIMEOUT_S = int(os.getenv("VERDICT_GIT_TIMEOUT", "10"))

# AI analysis retry policy
AI_MAX_RETRIES = int(os.getenv("VERDICT_AI_MAX_RETRIES", "3"))
AI_RETRY_BASE_MS = int(os.getenv("VERDICT_AI_RETRY_BASE_MS", "1000"))
AI_RETRY_MAX_MS = int(os.getenv("VERDICT_AI_RETRY_MAX_MS", "10000"))
AI_MIN_CONFIDENCE = float(os.getenv("VERDICT_AI_MIN_CONFIDENCE", "0.7"))

# Output limits (characters)
STORED_OUTPUT_LIMIT = int(os.getenv("VERDICT_STORED_OUTPUT_LIMIT", "5000"))
DIFF_PROMPT_LIMIT = int(os.getenv("VERDICT_DIFF_PROMPT_LIMIT", "10000"))
RELATED_FILE_LIMIT = int(os.getenv("VERDICT_RELATED_FILE_LIMIT", "5000"))
COMMAND_OUTPUT_LIMIT = 2000
HTTP_BODY_LIMIT = 1000

# Agents
AGENT_PRIORITY: List[str] = [
    name.strip()
    for name in os.getenv("VERDICT_AGENTS", "claude,codex,gemini").split(",")
    if name.strip()
]
OLLAMA_BASE_URL = os.getenv("OLLAMA_BASE_URL", "http://localhost:11434")
OLLAMA_MODEL = os.getenv("OLLAMA_MODEL", "qwen3-coder:480b-cloud")

# Hosts the HTTP strategy may reach when a strategy gives no allowlist
DEFAULT_ALLOWED_HOSTS: List[str] = ["localhost", "127.0.0.1", "::1"]
HTTP_USER_AGENT = os.getenv("VERDICT_HTTP_USER_AGENT", "verdict-engine/1.0")

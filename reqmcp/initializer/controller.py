"""Interactive initialization: from a server URL to a validated config file.

Steps, in order:

    url_collection -> connectivity_test -> credential_collection
    -> authentication -> pat_generation -> [confirm overwrite, backup]
    -> config_write -> config_validation

Every step is retried according to RETRY_POLICY. A step that exhausts its
attempts raises an InitError and the run stops. Whatever happens, every
secret captured along the way is wiped before run() returns.
"""

from __future__ import annotations

import logging
from collections.abc import Awaitable, Callable
from dataclasses import dataclass
from pathlib import Path
from typing import TypeVar

from rich.console import Console

from reqmcp.config.loader import default_config_path
from reqmcp.core.errors import ConfigError
from reqmcp.display.console import get_console
from reqmcp.initializer.client import (
    AuthResponse,
    NetworkClient,
    NetworkClientError,
    PATResponse,
)
from reqmcp.initializer.config_gen import ConfigGenerator, GeneratedConfig
from reqmcp.initializer.errors import (
    InitError,
    auth_error,
    filesystem_error,
    network_error,
    user_input_error,
    validation_error,
)
from reqmcp.initializer.filesystem import FileManager
from reqmcp.initializer.input import InputError, InputHandler
from reqmcp.initializer.progress import (
    OperationTimeoutError,
    ProgressIndicator,
    ProgressTracker,
    display_operation_error,
    display_operation_start,
    display_operation_success,
)
from reqmcp.initializer.security import (
    InsecureTransportError,
    SecureCleanup,
    SecureCredentials,
    SecureLogger,
    SecureToken,
)

T = TypeVar("T")

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class RetryPolicy:
    """Attempts and per-attempt timeout for one step.

    Attributes:
        max_attempts: Total tries, including the first.
        timeout: Seconds allowed per attempt. None for local steps.
    """

    max_attempts: int
    timeout: float | None = None


RETRY_POLICY: dict[str, RetryPolicy] = {
    "url_collection": RetryPolicy(3),
    "connectivity_test": RetryPolicy(3, timeout=15.0),
    "credential_collection": RetryPolicy(3),
    "authentication": RetryPolicy(3, timeout=30.0),
    "pat_generation": RetryPolicy(2, timeout=30.0),
    "config_write": RetryPolicy(2),
    "config_validation": RetryPolicy(2, timeout=30.0),
}

# Linear backoff: attempt n waits n * BACKOFF_UNIT seconds before the next try
BACKOFF_UNIT: float = 1.0

URL_PROBE_TIMEOUT: float = 10.0

_NETWORK_FAILURES = (NetworkClientError, OperationTimeoutError)


class InitController:
    """Runs the initialization state machine.

    All collaborators are injectable; defaults talk to the real terminal,
    network and filesystem.

    Args:
        input_handler: Prompts and screens.
        client_factory: Builds the network client for a base URL.
        config_gen: Config document builder.
        file_manager: Directory, write and backup operations.
        tracker: Step status table.
        indicator: Spinner around awaited operations.
        console: Output console.
        backoff_unit: Seconds per attempt in the retry backoff.
    """

    def __init__(
        self,
        input_handler: InputHandler | None = None,
        client_factory: Callable[[str], NetworkClient] = NetworkClient,
        config_gen: ConfigGenerator | None = None,
        file_manager: FileManager | None = None,
        tracker: ProgressTracker | None = None,
        indicator: ProgressIndicator | None = None,
        console: Console | None = None,
        backoff_unit: float = BACKOFF_UNIT,
    ) -> None:
        self.console = console or get_console()
        self.input = input_handler or InputHandler(self.console)
        self.client_factory = client_factory
        self.config_gen = config_gen or ConfigGenerator()
        self.file_manager = file_manager or FileManager()
        self.tracker = tracker or ProgressTracker(self.console)
        self.indicator = indicator or ProgressIndicator(self.console)
        self.backoff_unit = backoff_unit
        self.cleanup = SecureCleanup()
        self._log = SecureLogger(logger)
        self._client: NetworkClient | None = None

    def _say(self, text: str = "") -> None:
        self.console.print(text, markup=False, highlight=False)

    async def run(self, config_path: Path | None = None) -> Path:
        """Run every step and write the configuration.

        Args:
            config_path: Target file. Defaults to the server's default path.

        Returns:
            The path the configuration was written to.

        Raises:
            InitError: When a step fails for good.
        """
        self._log.info("Starting MCP Server initialization process")
        try:
            return await self._run(config_path)
        finally:
            self.cleanup.cleanup()
            if self._client is not None:
                await self._client.close()
                self._client = None

    async def _run(self, config_path: Path | None) -> Path:
        self.input.display_welcome()
        self.tracker.display_progress()

        path = self.resolve_config_path(config_path)

        url = await self._step(
            "url_collection",
            self._collect_server_url,
            lambda u: [f"Server URL: {u}"],
        )
        self._client = self.client_factory(url)
        await self._step(
            "connectivity_test",
            self._test_connectivity,
            lambda _: ["Server is reachable and ready"],
        )
        credentials = await self._step(
            "credential_collection",
            self._collect_credentials,
            lambda _: ["Credentials collected securely"],
        )
        auth = await self._step(
            "authentication",
            lambda: self._authenticate(credentials),
            lambda a: [f"Authenticated as: {a.user.username}"],
        )
        jwt = SecureToken(auth.token)
        self.cleanup.add_secret(jwt)
        auth.token = ""

        pat_response = await self._step(
            "pat_generation",
            lambda: self._generate_pat(jwt),
            _pat_details,
        )
        pat = SecureToken(pat_response.token)
        self.cleanup.add_secret(pat)
        pat_response.token = ""

        self._handle_existing_config(path)

        await self._step(
            "config_write",
            lambda: self._write_config(path, self.config_gen.generate(url, pat.value())),
            lambda _: [f"Configuration saved to: {path}"],
        )
        await self._step(
            "config_validation",
            lambda: self._validate_pat(pat),
            lambda _: ["Configuration is valid and ready to use"],
        )

        self.tracker.display_summary()
        self.input.display_success(path)
        self._log.info("MCP Server initialization completed successfully")
        return path

    def resolve_config_path(self, provided: Path | None) -> Path:
        """Return an absolute config path, defaulting to the server's.

        Raises:
            InitError: FileSystem category, if no home directory is known.
        """
        try:
            path = provided if provided is not None else default_config_path()
        except ConfigError as e:
            raise filesystem_error(
                "Failed to resolve configuration path", e, provided or ""
            ) from e
        return path.expanduser().absolute()

    async def _step(
        self,
        name: str,
        action: Callable[[], Awaitable[T]],
        details: Callable[[T], list[str]],
    ) -> T:
        self.tracker.start_step(name)
        display_operation_start(name, self.console)
        try:
            result = await action()
        except InitError as e:
            self.tracker.fail_step(name, e)
            display_operation_error(name, e, self.console)
            raise
        self.tracker.complete_step(name)
        display_operation_success(name, *details(result), console=self.console)
        return result

    async def _backoff(self, attempt: int) -> None:
        delay = attempt * self.backoff_unit
        if delay > 0:
            await self.indicator.wait(delay)

    # === Steps ===

    async def _collect_server_url(self) -> str:
        policy = RETRY_POLICY["url_collection"]
        for attempt in range(1, policy.max_attempts + 1):
            try:
                return await self.input.collect_server_url(self._probe_url)
            except InputError as e:
                self._log.with_error(e).warning(
                    "Failed to collect server URL (attempt %d/%d)", attempt, policy.max_attempts
                )
                if attempt == policy.max_attempts:
                    raise user_input_error(
                        "Failed to collect valid server URL after multiple attempts", e
                    ) from e
                self._say("Please try again...")
        raise AssertionError("unreachable")

    async def _probe_url(self, url: str) -> None:
        async with self.client_factory(url) as probe:
            await self.indicator.run(
                f"🔍 Checking {url}/ready...",
                probe.test_connectivity(),
                URL_PROBE_TIMEOUT,
            )

    async def _test_connectivity(self) -> None:
        client = self._require_client()
        try:
            client.ensure_secure()
        except InsecureTransportError as e:
            raise network_error(
                "Refusing to continue with HTTPS certificate validation disabled",
                e,
                retryable=False,
            ) from e

        policy = RETRY_POLICY["connectivity_test"]
        for attempt in range(1, policy.max_attempts + 1):
            self._log.info(
                "Testing connectivity to server (attempt %d/%d)...", attempt, policy.max_attempts
            )
            try:
                await self.indicator.run(
                    f"🔗 Testing server connectivity (attempt {attempt}/{policy.max_attempts})...",
                    client.test_connectivity(),
                    policy.timeout,
                )
                self._log.info("Server connectivity test successful")
                return
            except _NETWORK_FAILURES as e:
                self._log.with_error(e).warning(
                    "Connectivity test failed (attempt %d/%d)", attempt, policy.max_attempts
                )
                if attempt == policy.max_attempts:
                    raise network_error(
                        "Failed to connect to server after multiple attempts", e
                    ) from e
                await self._backoff(attempt)

    async def _collect_credentials(self) -> SecureCredentials:
        policy = RETRY_POLICY["credential_collection"]
        for attempt in range(1, policy.max_attempts + 1):
            try:
                username, password = self.input.collect_credentials()
            except InputError as e:
                self._log.with_error(e).warning(
                    "Failed to collect credentials (attempt %d/%d)", attempt, policy.max_attempts
                )
                if attempt == policy.max_attempts:
                    raise user_input_error(
                        "Failed to collect valid credentials after multiple attempts", e
                    ) from e
                self._say("Please try again...")
                continue

            credentials = SecureCredentials(username, password)
            self.cleanup.add_secret(credentials)
            # Drop the plain copies; only the secure buffers remain referenced
            del username, password
            return credentials
        raise AssertionError("unreachable")

    async def _authenticate(self, credentials: SecureCredentials) -> AuthResponse:
        client = self._require_client()
        policy = RETRY_POLICY["authentication"]
        for attempt in range(1, policy.max_attempts + 1):
            self._log.info(
                "Authenticating with server (attempt %d/%d)...", attempt, policy.max_attempts
            )
            username, password = credentials.reveal()
            try:
                response = await self.indicator.run(
                    f"🔑 Authenticating with server (attempt {attempt}/{policy.max_attempts})...",
                    client.authenticate(username, password),
                    policy.timeout,
                )
                self._log.info("Authentication successful")
                return response
            except _NETWORK_FAILURES as e:
                self._log.with_error(e).warning(
                    "Authentication failed (attempt %d/%d)", attempt, policy.max_attempts
                )
                if attempt == policy.max_attempts:
                    raise auth_error(
                        "Authentication failed after multiple attempts", e, is_credential_issue=True
                    ) from e
            finally:
                del username, password

            self._say("Authentication failed. Please check your credentials and try again.")
            credentials = await self._collect_credentials()
        raise AssertionError("unreachable")

    async def _generate_pat(self, jwt: SecureToken) -> PATResponse:
        client = self._require_client()
        policy = RETRY_POLICY["pat_generation"]
        for attempt in range(1, policy.max_attempts + 1):
            self._log.info("Generating PAT token (attempt %d/%d)...", attempt, policy.max_attempts)
            try:
                response = await self.indicator.run(
                    f"🎟️  Generating Personal Access Token (attempt {attempt}/{policy.max_attempts})...",
                    client.create_pat(jwt.value()),
                    policy.timeout,
                )
                self._log.info("PAT token generated successfully")
                return response
            except _NETWORK_FAILURES as e:
                self._log.with_error(e).warning(
                    "PAT generation failed (attempt %d/%d)", attempt, policy.max_attempts
                )
                if attempt == policy.max_attempts:
                    raise auth_error(
                        "Failed to generate PAT token after multiple attempts",
                        e,
                        is_credential_issue=False,
                    ) from e
                await self._backoff(attempt)
        raise AssertionError("unreachable")

    def _handle_existing_config(self, path: Path) -> None:
        """Confirm and back up an existing file. Declining stops the run."""
        if not self.file_manager.config_exists(path):
            return

        self._log.info("Existing configuration file detected")
        try:
            overwrite = self.input.confirm_overwrite(path)
        except InputError as e:
            raise user_input_error("Failed to get user confirmation for overwrite", e) from e
        if not overwrite:
            raise user_input_error("User cancelled initialization due to existing configuration")

        try:
            backup = self.file_manager.backup_existing_config(path)
        except OSError as e:
            # Not fatal; the new file is still written
            self._log.with_error(e).warning("Failed to create backup of existing configuration")
            self._say(f"⚠️  Could not back up the existing configuration: {e}")
            return
        self._log.info("Created backup of existing configuration: %s", backup)
        self._say(f"📁 Backup created: {backup}")

    async def _write_config(self, path: Path, config: GeneratedConfig) -> None:
        try:
            self.config_gen.validate(config)
        except ConfigError as e:
            raise validation_error("Generated configuration is invalid", e) from e

        policy = RETRY_POLICY["config_write"]
        for attempt in range(1, policy.max_attempts + 1):
            self._log.info(
                "Writing configuration file (attempt %d/%d)...", attempt, policy.max_attempts
            )
            try:
                await self.indicator.run(
                    f"📝 Writing configuration file (attempt {attempt}/{policy.max_attempts})...",
                    self._write_once(path, config),
                    policy.timeout,
                )
                self._log.info("Configuration file written successfully")
                return
            except (OSError, ValueError) as e:
                self._log.with_error(e).warning(
                    "Failed to write config file (attempt %d/%d)", attempt, policy.max_attempts
                )
                if attempt == policy.max_attempts:
                    raise filesystem_error(
                        "Failed to write configuration file after multiple attempts", e, path
                    ) from e

    async def _write_once(self, path: Path, config: GeneratedConfig) -> None:
        self.file_manager.validate_config_path(path)
        self.file_manager.write_config(path, self.config_gen.to_json(config))

    async def _validate_pat(self, pat: SecureToken) -> None:
        client = self._require_client()
        policy = RETRY_POLICY["config_validation"]
        for attempt in range(1, policy.max_attempts + 1):
            self._log.info("Validating PAT token (attempt %d/%d)...", attempt, policy.max_attempts)
            try:
                await self.indicator.run(
                    f"🔍 Validating PAT token (attempt {attempt}/{policy.max_attempts})...",
                    client.validate_pat(pat.value()),
                    policy.timeout,
                )
                self._log.info("PAT token validation successful")
                return
            except _NETWORK_FAILURES as e:
                self._log.with_error(e).warning(
                    "PAT validation failed (attempt %d/%d)", attempt, policy.max_attempts
                )
                if attempt == policy.max_attempts:
                    raise validation_error(
                        "PAT token validation failed after multiple attempts", e
                    ) from e
                await self._backoff(attempt)

    def _require_client(self) -> NetworkClient:
        if self._client is None:
            raise RuntimeError("network client not created; collect the server URL first")
        return self._client


def _pat_details(response: PATResponse) -> list[str]:
    details = [f"Token name: {response.name}"]
    if response.expires_at is not None:
        details.append(f"Expires: {response.expires_at:%Y-%m-%d}")
    return details

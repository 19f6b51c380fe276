"""Target secret naming.

Secret names follow ``{environment}-{service}-{variable}`` where the variable
is the dotted key with underscores turned into hyphens. Naming is a pure
function of its inputs so the emitted mapping table can be trusted for later
playbook rewrites.
"""

import threading

from vault_to_bws.exceptions import DuplicateSecretNameError
from vault_to_bws.models import DEFAULT_ENVIRONMENT, ExtractedSecret, NamedSecret, SecretFile


def secret_name(key: str, source: SecretFile, environment: str | None = None) -> str:
    """Derive the Bitwarden secret name for one vault variable.

    Args:
        key: Dotted variable key.
        source: Vault file the variable came from.
        environment: Environment tag; falls back to ``prod`` when empty.

    Returns:
        The target secret name.

    """
    tag = environment or DEFAULT_ENVIRONMENT
    variable = key.replace("_", "-")
    return f"{tag}-{source.service_name}-{variable}"


class NameRegistry:
    """Tracks the target names claimed during one run.

    Two different leaves resolving to the same name would make the second
    creation overwrite or shadow the first, so a repeated claim is an error.
    Safe to share between worker threads.
    """

    def __init__(self) -> None:
        self._claimed: dict[str, str] = {}
        self._lock = threading.Lock()

    def __len__(self) -> int:
        with self._lock:
            return len(self._claimed)

    def claim(self, secret: ExtractedSecret, environment: str | None = None) -> NamedSecret:
        """Name a secret and reserve that name for it.

        Args:
            secret: The extracted secret to name.
            environment: Environment tag for the run.

        Returns:
            The named secret.

        Raises:
            DuplicateSecretNameError: If another leaf already claimed the name.

        """
        name = secret_name(secret.key, secret.source, environment)
        origin = f"{secret.source.path} [{secret.key}]"
        with self._lock:
            first = self._claimed.setdefault(name, origin)
        if first != origin:
            raise DuplicateSecretNameError(name, first)
        return NamedSecret(extracted=secret, target_name=name)

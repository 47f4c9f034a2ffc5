"""
Decision Engine for the JML Trigger Engine.

Resolves the check for a business process, evaluates it, and maps the
resulting Shortcut onto the final action for the process launcher.
"""

from typing import Optional

from ..models import Decision, IdentitySnapshot, InvalidSnapshotError
from .checks import CheckFactory
from .config_lookup import ConfigurationLookup


class DecisionEngine:
    """
    Stateless lifecycle trigger decision function.

    Holds no per-identity state and caches nothing: configuration is read
    through the lookup on every call, so one instance can be shared
    across threads.
    """

    def __init__(self, config: ConfigurationLookup, check_factory: Optional[CheckFactory] = None):
        """
        Initialize the decision engine.

        Args:
            config: Configuration lookup for business process options
            check_factory: Factory resolving process names to checks
        """
        self.config = config
        self.check_factory = check_factory or CheckFactory()

    def decide(
        self,
        process_name: Optional[str],
        previous: Optional[IdentitySnapshot],
        current: IdentitySnapshot,
        display_name: Optional[str] = None,
    ) -> Decision:
        """
        Decide whether a lifecycle process should run for an identity.

        Args:
            process_name: Business process name ('joiner', 'mover', 'leaver', ...)
            previous: Identity state before the change, None for a new identity
            current: Identity state after the change
            display_name: Name used for tracing; defaults to the identity name

        Returns:
            Decision with the final action and the shortcut behind it

        Raises:
            InvalidSnapshotError: If no current snapshot is supplied
        """
        if not isinstance(current, IdentitySnapshot):
            raise InvalidSnapshotError(
                f"A current identity snapshot is required to decide '{process_name}'"
            )
        if previous is not None and not isinstance(previous, IdentitySnapshot):
            raise InvalidSnapshotError(
                f"Previous snapshot for '{current.name}' must be an IdentitySnapshot or None"
            )

        check = self.check_factory.resolve(process_name)
        shortcut = check.evaluate(previous, current, display_name or current.name, self.config)
        return Decision.from_shortcut(shortcut)

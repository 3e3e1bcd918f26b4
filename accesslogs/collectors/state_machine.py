"""State machine for per-domain export processing."""

from enum import Enum

import structlog


logger = structlog.get_logger()


class DomainState(str, Enum):
    """State of a domain during an export run.

    - DOMAIN_PENDING: Not yet started
    - DOMAIN_FETCHING: Paginating the access-log endpoint
    - DOMAIN_CONVERTING: Transcoding and writing the log file
    - DOMAIN_EMPTY: No records in the window; nothing written
    - DOMAIN_DONE: Log file written
    - DOMAIN_FAILED: Fetch, conversion or write failed
    """

    DOMAIN_PENDING = "DOMAIN_PENDING"
    DOMAIN_FETCHING = "DOMAIN_FETCHING"
    DOMAIN_CONVERTING = "DOMAIN_CONVERTING"
    DOMAIN_EMPTY = "DOMAIN_EMPTY"
    DOMAIN_DONE = "DOMAIN_DONE"
    DOMAIN_FAILED = "DOMAIN_FAILED"


_TERMINAL_STATES = frozenset(
    {DomainState.DOMAIN_EMPTY, DomainState.DOMAIN_DONE, DomainState.DOMAIN_FAILED}
)

_VALID_TRANSITIONS: dict[DomainState, set[DomainState]] = {
    DomainState.DOMAIN_PENDING: {
        DomainState.DOMAIN_FETCHING,
        DomainState.DOMAIN_FAILED,
    },
    DomainState.DOMAIN_FETCHING: {
        DomainState.DOMAIN_CONVERTING,
        DomainState.DOMAIN_EMPTY,
        DomainState.DOMAIN_FAILED,
    },
    DomainState.DOMAIN_CONVERTING: {
        DomainState.DOMAIN_DONE,
        DomainState.DOMAIN_FAILED,
    },
    DomainState.DOMAIN_EMPTY: set(),
    DomainState.DOMAIN_DONE: set(),
    DomainState.DOMAIN_FAILED: set(),
}


class DomainStateTransitionError(Exception):
    """Raised when an illegal state transition is attempted."""

    def __init__(
        self,
        domain: str,
        from_state: DomainState,
        to_state: DomainState,
    ) -> None:
        """Initialize the transition error.

        Args:
            domain: Domain being processed.
            from_state: Current state.
            to_state: Attempted target state.
        """
        self.domain = domain
        self.from_state = from_state
        self.to_state = to_state
        super().__init__(
            f"Illegal state transition for domain '{domain}': "
            f"{from_state.value} -> {to_state.value}"
        )


class DomainStateMachine:
    """Tracks one domain through fetch, conversion and write."""

    def __init__(self, domain: str, run_id: str) -> None:
        """Initialize the state machine.

        Args:
            domain: Domain being processed.
            run_id: Identifier for the current run.
        """
        self._domain = domain
        self._state = DomainState.DOMAIN_PENDING
        self._log = logger.bind(component="runner", run_id=run_id, domain=domain)

    @property
    def state(self) -> DomainState:
        """Get the current state."""
        return self._state

    @property
    def is_terminal(self) -> bool:
        """Check if current state is terminal."""
        return self._state in _TERMINAL_STATES

    def transition_to(self, target: DomainState) -> None:
        """Transition to a new state.

        Raises:
            DomainStateTransitionError: If the transition is invalid.
        """
        if target not in _VALID_TRANSITIONS[self._state]:
            self._log.error(
                "illegal_state_transition",
                from_state=self._state.value,
                to_state=target.value,
            )
            raise DomainStateTransitionError(self._domain, self._state, target)

        self._log.debug(
            "state_transition",
            from_state=self._state.value,
            to_state=target.value,
        )
        self._state = target

    def to_fetching(self) -> None:
        """Transition to DOMAIN_FETCHING."""
        self.transition_to(DomainState.DOMAIN_FETCHING)

    def to_converting(self) -> None:
        """Transition to DOMAIN_CONVERTING."""
        self.transition_to(DomainState.DOMAIN_CONVERTING)

    def to_empty(self) -> None:
        """Transition to DOMAIN_EMPTY."""
        self.transition_to(DomainState.DOMAIN_EMPTY)

    def to_done(self) -> None:
        """Transition to DOMAIN_DONE."""
        self.transition_to(DomainState.DOMAIN_DONE)

    def to_failed(self) -> None:
        """Transition to DOMAIN_FAILED."""
        self.transition_to(DomainState.DOMAIN_FAILED)

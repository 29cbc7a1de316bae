"""
Client-side domain-state synchronization layer.

    AppState            lifecycle root (restore / hydrate / login / logout)
    PulseGateway        REST access (pulse.integrations.pulse_gateway)
    normalizer          server payload -> canonical entities
    DomainStore         in-memory normalized store with memoized indexes
    views / recurrence  derived read-only views
    MutationCoordinator write operations and their post-commit effects
    ReminderScanner     background due-soon to-do notifications
"""

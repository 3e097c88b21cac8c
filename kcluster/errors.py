"""
Terminal failure reasons of a provisioning run. Every failure a caller can
see is a :class:`ConvergenceError`.
"""


class ConvergenceError(Exception):
    """Base class of all convergence failures."""
    reason = 'error'


class Timeout(ConvergenceError):
    """The bound was exceeded without reaching the target state."""
    reason = 'timeout'


class UnexpectedTopology(ConvergenceError):
    """The observed cluster cannot be a valid booting or converged cluster."""
    reason = 'unexpected_topology'


class SecurityGroupNotFound(ConvergenceError):
    """The master security group lookup was empty or ambiguous."""
    reason = 'security_group_not_found'


class BackendError(ConvergenceError):
    """An underlying backend call failed; the original error is __cause__."""
    reason = 'backend_error'

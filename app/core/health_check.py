"""
Health reporting for the breaker-guarded service layer.

Usage:
    from app.core.health_check import HealthCheck

    circuits = HealthCheck.check_circuit_health()
    # {"status": "critical", "open_circuits": ["EthereumRpcClient.get_balance"], ...}
"""

from typing import Any, Dict, Literal

import structlog

from app.core.circuit_breaker import CircuitBreakerRegistry, CircuitState

logger = structlog.get_logger(__name__)

__all__ = ["HealthCheck", "HealthStatus"]

HealthStatus = Literal["ok", "warning", "critical"]


class HealthCheck:
    """
    Status is "critical" while any circuit is open (its dependency is being
    short-circuited), "warning" while one is probing, "ok" otherwise.
    """

    @staticmethod
    def check_circuit_health() -> Dict[str, Any]:
        try:
            states = CircuitBreakerRegistry.get_all_states()

            open_circuits = [name for name, state in states.items() if state == CircuitState.OPEN.value]
            half_open_circuits = [
                name for name, state in states.items() if state == CircuitState.HALF_OPEN.value
            ]
            closed_circuits = [
                name for name, state in states.items() if state == CircuitState.CLOSED.value
            ]

            status: HealthStatus = "ok"
            if open_circuits:
                status = "critical"
            elif half_open_circuits:
                status = "warning"

            return {
                "status": status,
                "open_circuits": open_circuits,
                "half_open_circuits": half_open_circuits,
                "closed_circuits": closed_circuits,
                "total_circuits": len(states),
            }

        except Exception as e:
            logger.error("Circuit health check failed", error=str(e))
            return {
                "status": "warning",
                "reason": f"Health check error: {str(e)}",
            }

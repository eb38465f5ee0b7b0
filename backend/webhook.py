"""Outbound webhook carrying a summary of one day's fleet."""

import logging
from datetime import date
from typing import Any, Dict, Optional

import requests

from models.errors import WebhookError
from models.general_info import GeneralInfo
from models.session import UserSession
from models.stats import FleetStats, count_statuses, counts_by_type

logger = logging.getLogger(__name__)

WEEKDAYS = [
    "segunda-feira",
    "terça-feira",
    "quarta-feira",
    "quinta-feira",
    "sexta-feira",
    "sábado",
    "domingo",
]

MONTHS = [
    "janeiro",
    "fevereiro",
    "março",
    "abril",
    "maio",
    "junho",
    "julho",
    "agosto",
    "setembro",
    "outubro",
    "novembro",
    "dezembro",
]


def format_long_date(day: str) -> str:
    """Format an ISO date the pt-BR long way, e.g. 'sexta-feira, 1 de março de 2024'."""
    d = date.fromisoformat(day)
    return f"{WEEKDAYS[d.weekday()]}, {d.day} de {MONTHS[d.month - 1]} de {d.year}"


def build_payload(
    day: str,
    stats: FleetStats,
    by_type: Dict[str, Dict[str, int]],
    info: GeneralInfo,
    session: UserSession,
) -> Dict[str, Any]:
    """Assemble the JSON document posted to the webhook."""
    return {
        "data": format_long_date(day),
        "frota_por_tipo": by_type,
        "resumo_frota": {
            "total": stats.total,
            "funcionando": {
                "quantidade": stats.funcionando,
                "percentual": stats.funcionando_pct,
            },
            "quebrados": {
                "quantidade": stats.quebrado,
                "percentual": stats.quebrado_pct,
            },
            "emprestados": {
                "quantidade": stats.emprestado,
                "percentual": stats.emprestado_pct,
            },
        },
        "informativo_geral": info.to_dict(),
        "usuario": {
            "nome": session.display_name,
            "email": session.email,
        },
    }


def collect_payload(repository, session: UserSession, day: str) -> Dict[str, Any]:
    """Read the day's status rows and general info and build the payload."""
    records = repository.statuses_for_date(session, day)
    info = repository.get_general_info(session, day)
    return build_payload(day, count_statuses(records), counts_by_type(records), info, session)


def send_webhook(
    url: str,
    payload: Dict[str, Any],
    timeout: float = 10,
    http: Optional[requests.Session] = None,
) -> None:
    """
    POST the payload and ignore the response.

    Only network-level failures raise WebhookError; the HTTP status and
    body are not inspected.
    """
    poster = http or requests
    try:
        response = poster.post(url, json=payload, timeout=timeout)
    except requests.RequestException as e:
        raise WebhookError(f"Webhook POST failed: {e}") from e
    logger.info("Webhook delivered for %s (HTTP %s)", payload.get("data"), response.status_code)

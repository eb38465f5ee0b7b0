"""Chart.js data for the dashboard charts."""

from typing import Any, Dict

from models.general_info import FIELDS, GeneralInfo
from models.stats import FleetStats


def situation_chart(info: GeneralInfo) -> Dict[str, Any]:
    """Bar chart of the four general-info counters."""
    return {
        "labels": list(FIELDS.values()),
        "datasets": [
            {
                "label": "Quantidade",
                "data": info.values(),
                "backgroundColor": [
                    "hsl(217, 91%, 60%)",
                    "hsl(160, 84%, 39%)",
                    "hsl(32, 95%, 44%)",
                    "hsl(0, 84%, 60%)",
                ],
                "borderColor": [
                    "hsl(217, 91%, 50%)",
                    "hsl(160, 84%, 29%)",
                    "hsl(32, 95%, 34%)",
                    "hsl(0, 84%, 50%)",
                ],
                "borderWidth": 1,
            }
        ],
    }


def fleet_chart(stats: FleetStats) -> Dict[str, Any]:
    """Doughnut of functioning, broken and loaned vehicles."""
    return {
        "labels": ["Funcionando", "Quebrados", "Emprestados"],
        "datasets": [
            {
                "data": [stats.funcionando, stats.quebrado, stats.emprestado],
                "backgroundColor": ["#16a34a", "#dc2626", "#ea580c"],
                "borderWidth": 0,
            }
        ],
    }

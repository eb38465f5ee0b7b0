"""GeneralInfo dataclass for the per-date operational counters."""

from dataclasses import dataclass, asdict
from typing import Any, Dict, List, Mapping

from .errors import ValidationError

# Counter field -> chart label
FIELDS = {
    "extravasamento": "Extravasamento",
    "servico_turma_02": "Serviço Turma 02",
    "servico_turma_05": "Serviço Turma 05",
    "oge": "OGE",
}


@dataclass
class GeneralInfo:
    """Four independent non-negative counters recorded for a date."""

    extravasamento: int = 0
    servico_turma_02: int = 0
    servico_turma_05: int = 0
    oge: int = 0

    def __post_init__(self):
        for name in FIELDS:
            if getattr(self, name) < 0:
                raise ValidationError(f"{FIELDS[name]} não pode ser negativo")

    @classmethod
    def from_row(cls, row: Mapping[str, Any]) -> "GeneralInfo":
        """Build from a backend row; missing or null counters read as zero."""
        return cls(**{name: int(row.get(name) or 0) for name in FIELDS})

    @classmethod
    def from_form(cls, form: Mapping[str, Any]) -> "GeneralInfo":
        """
        Parse counters from submitted form fields.

        Blank fields are zero. Raises ValidationError for anything that
        is not a non-negative integer.
        """
        values = {}
        for name, label in FIELDS.items():
            raw = (form.get(name) or "").strip()
            if not raw:
                values[name] = 0
                continue
            try:
                values[name] = int(raw)
            except ValueError:
                raise ValidationError(f"Valor inválido para {label}: {raw}") from None
        return cls(**values)

    def to_dict(self) -> Dict[str, int]:
        return asdict(self)

    def values(self) -> List[int]:
        return [getattr(self, name) for name in FIELDS]

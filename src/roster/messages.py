"""Message catalogs for schedule change log entries."""

from __future__ import annotations

from datetime import datetime
from zoneinfo import ZoneInfo

from .utils import as_utc

CATALOGS: dict[str, dict[str, str]] = {
    "pt-BR": {
        "member_added": "{person} foi adicionado(a)",
        "member_added_as": "{person} foi adicionado(a) como {responsibility}",
        "member_removed": "{person} foi removido(a) da escala",
        "member_status_changed": 'Status de {person} foi alterado de "{old}" para "{new}"',
        "member_present_changed": 'Presença de {person} foi alterada de "{old}" para "{new}"',
        "member_responsibility_changed": (
            'Função de {person} foi alterada de "{old}" para "{new}"'
        ),
        "schedule_start_date_changed": (
            'Data/hora de início da escala foi alterada de "{old}" para "{new}"'
        ),
        "schedule_end_date_changed": (
            'Data/hora de término da escala foi alterada de "{old}" para "{new}"'
        ),
        "schedule_status_changed": 'Status da escala foi alterado de "{old}" para "{new}"',
        "team_changed": 'Equipe da escala foi alterada de "{old}" para "{new}"',
        "team_member_added": "{person} foi adicionado(a) à equipe",
        "team_member_added_as": "{person} foi adicionado(a) à equipe como {role}",
        "team_member_removed": "{person} foi removido(a) da equipe",
        # placeholders
        "member": "Membro",
        "undefined": "Não definida",
        "responsibility_not_found": "Função não encontrada",
        "team_not_found": "Equipe não encontrada",
        "present_true": "Presente",
        "present_false": "Ausente",
        "present_none": "Não informado",
        "member_status.pending": "Pendente",
        "member_status.accepted": "Aceito",
        "member_status.rejected": "Rejeitado",
        "schedule_status.pending": "Pendente",
        "schedule_status.confirmed": "Confirmada",
        "schedule_status.cancelled": "Cancelada",
        "datetime_format": "%d/%m/%Y, %H:%M:%S",
    },
    "en": {
        "member_added": "{person} was added",
        "member_added_as": "{person} was added as {responsibility}",
        "member_removed": "{person} was removed from the schedule",
        "member_status_changed": 'Status of {person} changed from "{old}" to "{new}"',
        "member_present_changed": 'Attendance of {person} changed from "{old}" to "{new}"',
        "member_responsibility_changed": (
            'Responsibility of {person} changed from "{old}" to "{new}"'
        ),
        "schedule_start_date_changed": 'Schedule start changed from "{old}" to "{new}"',
        "schedule_end_date_changed": 'Schedule end changed from "{old}" to "{new}"',
        "schedule_status_changed": 'Schedule status changed from "{old}" to "{new}"',
        "team_changed": 'Schedule team changed from "{old}" to "{new}"',
        "team_member_added": "{person} was added to the team",
        "team_member_added_as": "{person} was added to the team as {role}",
        "team_member_removed": "{person} was removed from the team",
        "member": "Member",
        "undefined": "Not set",
        "responsibility_not_found": "Responsibility not found",
        "team_not_found": "Team not found",
        "present_true": "Present",
        "present_false": "Absent",
        "present_none": "Not informed",
        "member_status.pending": "Pending",
        "member_status.accepted": "Accepted",
        "member_status.rejected": "Rejected",
        "schedule_status.pending": "Pending",
        "schedule_status.confirmed": "Confirmed",
        "schedule_status.cancelled": "Cancelled",
        "datetime_format": "%m/%d/%Y, %I:%M:%S %p",
    },
}


class MessageCatalog:
    """Looks up and formats localized log strings."""

    def __init__(self, locale: str = "pt-BR", timezone: str = "UTC") -> None:
        self.locale = locale if locale in CATALOGS else "pt-BR"
        self._entries = CATALOGS[self.locale]
        self._zone = ZoneInfo(timezone)

    def text(self, key: str, **values: object) -> str:
        template = self._entries[key]
        return template.format(**values) if values else template

    def member_status(self, status: str | None) -> str:
        if status is None:
            return self.text("undefined")
        return self._entries.get(f"member_status.{status}", status)

    def schedule_status(self, status: str | None) -> str:
        if status is None:
            return self.text("undefined")
        return self._entries.get(f"schedule_status.{status}", status)

    def presence(self, present: bool | None) -> str:
        if present is True:
            return self.text("present_true")
        if present is False:
            return self.text("present_false")
        return self.text("present_none")

    def instant(self, value: str | datetime | None) -> str:
        if not value:
            return self.text("undefined")
        if isinstance(value, str):
            value = datetime.fromisoformat(value)
        local = as_utc(value).astimezone(self._zone)
        return local.strftime(self._entries["datetime_format"])


__all__ = ["CATALOGS", "MessageCatalog"]

from dataclasses import dataclass, field


@dataclass
class ImportResult:
    """Resultado de un lote de importacion: entradas validas y filas omitidas."""

    schedules: list = field(default_factory=list)
    errors: list = field(default_factory=list)

    @property
    def error_count(self) -> int:
        return len(self.errors)

    def summary(self) -> str:
        text = f"{len(self.schedules)} eventos validos"
        if self.errors:
            text += f" ({self.error_count} omitidos)"
        return text

import logging
import webbrowser

import pystray
from PIL import Image, ImageDraw

import config

logger = logging.getLogger(__name__)

ICON_SIZE = 64
APP_NAME = "DeskChime"


def _create_icon_image(color: str) -> Image.Image:
    img = Image.new("RGBA", (ICON_SIZE, ICON_SIZE), (0, 0, 0, 0))
    draw = ImageDraw.Draw(img)
    margin = 8
    draw.ellipse(
        [margin, margin, ICON_SIZE - margin, ICON_SIZE - margin],
        fill=color,
    )
    # Bell clapper
    center = ICON_SIZE // 2
    draw.ellipse([center - 5, ICON_SIZE - margin - 12, center + 5, ICON_SIZE - margin - 2], fill="#ffffff")
    return img


def _icon_idle() -> Image.Image:
    return _create_icon_image("#888888")


def _icon_upcoming() -> Image.Image:
    return _create_icon_image("#2f9e44")


class TrayIcon:
    """Icono de bandeja: menu de la aplicacion y destino de las notificaciones."""

    def __init__(self, on_quit):
        self._on_quit = on_quit
        self._tooltip = APP_NAME
        self._has_upcoming = False
        self._icon: pystray.Icon | None = None

    def _build_menu(self):
        return pystray.Menu(
            pystray.MenuItem(
                "Abrir panel",
                lambda: webbrowser.open(f"http://{config.HOST}:{config.PORT}/docs"),
                default=True,
            ),
            pystray.Menu.SEPARATOR,
            pystray.MenuItem("Salir", self._quit),
        )

    def _quit(self):
        try:
            self._on_quit()
        except Exception as e:
            logger.error("Error al salir: %s", e)
        self.stop()

    def notify(self, title: str, body: str):
        """Notificacion de escritorio; si falla solo se registra."""
        if not self._icon:
            logger.info("Notificacion (sin bandeja): %s | %s", title, body.replace("\n", " "))
            return
        try:
            self._icon.notify(body, title)
        except Exception as e:
            logger.warning("No se pudo mostrar la notificacion '%s': %s", title, e)

    def update_next(self, label: str | None):
        self._has_upcoming = bool(label)
        self._tooltip = f"{APP_NAME} - {label}" if label else APP_NAME
        if self._icon:
            self._icon.icon = _icon_upcoming() if self._has_upcoming else _icon_idle()
            self._icon.title = self._tooltip

    def run(self):
        self._icon = pystray.Icon(
            APP_NAME,
            icon=_icon_upcoming() if self._has_upcoming else _icon_idle(),
            title=self._tooltip,
            menu=self._build_menu(),
        )
        self._icon.run()

    def stop(self):
        if self._icon:
            self._icon.stop()

import json
import logging
import re
from http.server import BaseHTTPRequestHandler, ThreadingHTTPServer
from typing import Optional, Tuple
from urllib.parse import parse_qs, unquote, urlparse

from pitch_booking.core.config import Settings
from pitch_booking.core.errors import BookingError, NotFoundError, ValidationError
from pitch_booking.core.store import open_store
from pitch_booking.repositories.pitch_repository import PitchRepository
from pitch_booking.repositories.reservation_repository import ReservationRepository
from pitch_booking.services.catalog_service import CatalogService
from pitch_booking.services.reservation_service import ReservationService

logger = logging.getLogger(__name__)

# First match wins, so fixed paths go before the /{id} patterns
ROUTES = [
    (re.compile(r"^/api/pitches$"), {"GET": "handle_list_pitches"}),
    (re.compile(r"^/api/pitches/(?P<pitch_id>[^/]+)$"), {"GET": "handle_get_pitch"}),
    (re.compile(r"^/api/bookings$"), {
        "GET": "handle_list_reservations",
        "POST": "handle_create_reservation",
    }),
    (re.compile(r"^/api/bookings/check-availability$"), {"POST": "handle_check_availability"}),
    (
        re.compile(r"^/api/bookings/pitch/(?P<pitch_id>[^/]+)/date/(?P<booking_date>[^/]+)$"),
        {"GET": "handle_list_for_pitch_and_date"},
    ),
    (re.compile(r"^/api/bookings/(?P<reservation_id>[^/]+)$"), {"DELETE": "handle_cancel_reservation"}),
]


def first_of(data: dict, *names):
    """Value of the first key present, so camelCase and generic field names both work."""
    for name in names:
        value = data.get(name)
        if value is not None:
            return value
    return None


class ApiHandler(BaseHTTPRequestHandler):
    server_version = "PitchBooking/1.0"

    def do_GET(self):
        self.route("GET")

    def do_POST(self):
        self.route("POST")

    def do_DELETE(self):
        self.route("DELETE")

    def do_OPTIONS(self):
        self.send_response(200)
        self.send_cors_headers()
        self.send_header("Content-Length", "0")
        self.end_headers()

    def route(self, method: str):
        parsed = urlparse(self.path)
        path = parsed.path.rstrip("/") or "/"
        for pattern, handlers in ROUTES:
            match = pattern.match(path)
            if not match:
                continue
            handler_name = handlers.get(method)
            if handler_name is None:
                self.send_json(
                    405,
                    {"error": f"Method {method} Not Allowed"},
                    extra_headers={"Allow": ", ".join(handlers)},
                )
                return
            params = {key: unquote(value) for key, value in match.groupdict().items()}
            try:
                getattr(self, handler_name)(parse_qs(parsed.query), **params)
            except BookingError as exc:
                self.send_json(exc.status, exc.to_dict())
            except Exception:
                logger.exception(f"Unhandled error on {method} {path}")
                self.send_json(500, {"error": "Internal server error", "code": "internal_error"})
            return
        self.send_json(404, {"error": "Not found"})

    # Pitches

    def handle_list_pitches(self, query):
        pitches = self.server.catalog_service.list_pitches()
        self.send_json(200, [p.to_dict() for p in pitches])

    def handle_get_pitch(self, query, pitch_id):
        pitch = self.server.catalog_service.get_pitch(pitch_id)
        self.send_json(200, pitch.to_dict())

    # Reservations

    def handle_list_reservations(self, query):
        pitch_id = first_of(query, "pitch", "resource", "pitchId")
        booking_date = first_of(query, "date")
        service = self.server.reservation_service
        if pitch_id and booking_date:
            reservations = service.list_reservations_for(pitch_id[0], booking_date[0])
            self.send_json(200, [r.to_dict() for r in reservations])
            return
        self.send_json(200, service.list_reservations())

    def handle_list_for_pitch_and_date(self, query, pitch_id, booking_date):
        reservations = self.server.reservation_service.list_reservations_for(pitch_id, booking_date)
        self.send_json(200, [r.to_dict() for r in reservations])

    def handle_check_availability(self, query):
        data = self.read_json()
        result = self.server.reservation_service.check_availability(
            first_of(data, "pitchId", "resourceId"),
            first_of(data, "date", "bookingDate"),
            first_of(data, "startTime", "start"),
            first_of(data, "endTime", "end"),
        )
        conflicts = [r.to_dict() for r in result.conflicts]
        self.send_json(200, {
            "available": result.available,
            "conflicts": conflicts,
            "conflictingBookings": conflicts,
        })

    def handle_create_reservation(self, query):
        data = self.read_json()
        reservation = self.server.reservation_service.create_reservation(
            pitch_id=first_of(data, "pitchId", "resourceId"),
            customer_name=first_of(data, "customerName"),
            customer_email=first_of(data, "customerEmail"),
            customer_phone=first_of(data, "customerPhone"),
            booking_date=first_of(data, "bookingDate", "date"),
            start_time=first_of(data, "startTime", "start"),
            end_time=first_of(data, "endTime", "end"),
        )
        self.send_json(201, reservation)

    def handle_cancel_reservation(self, query, reservation_id):
        if not self.server.reservation_service.cancel_reservation(reservation_id):
            raise NotFoundError("Booking not found", code="reservation_not_found")
        self.send_json(200, {"message": "Booking deleted successfully"})

    # Helpers

    def read_json(self) -> dict:
        try:
            length = int(self.headers.get("Content-Length", "0") or "0")
        except ValueError as exc:
            raise ValidationError("Invalid Content-Length header", code="invalid_format") from exc
        raw = self.rfile.read(length) if length > 0 else b""
        if not raw:
            return {}
        try:
            data = json.loads(raw.decode("utf-8"))
        except ValueError as exc:
            raise ValidationError("Request body must be valid JSON", code="invalid_format") from exc
        if not isinstance(data, dict):
            raise ValidationError("Request body must be a JSON object", code="invalid_format")
        return data

    def send_json(self, status: int, payload, extra_headers: Optional[dict] = None):
        body = json.dumps(payload).encode("utf-8")
        self.send_response(status)
        self.send_header("Content-Type", "application/json; charset=utf-8")
        self.send_header("Content-Length", str(len(body)))
        self.send_cors_headers()
        for name, value in (extra_headers or {}).items():
            self.send_header(name, value)
        self.end_headers()
        self.wfile.write(body)

    def send_cors_headers(self):
        self.send_header("Access-Control-Allow-Origin", self.server.settings.cors_origin)
        self.send_header("Access-Control-Allow-Credentials", "true")
        self.send_header("Access-Control-Allow-Methods", "GET, POST, DELETE, OPTIONS")
        self.send_header("Access-Control-Allow-Headers", "Content-Type")

    def log_message(self, format, *args):
        logger.info(f"{self.address_string()} - {format % args}")


class BookingHTTPServer(ThreadingHTTPServer):
    daemon_threads = True

    def __init__(self, server_address, settings: Settings, catalog_service: CatalogService,
                 reservation_service: ReservationService):
        self.settings = settings
        self.catalog_service = catalog_service
        self.reservation_service = reservation_service
        super().__init__(server_address, ApiHandler)


def build_services(settings: Settings, store=None) -> Tuple[CatalogService, ReservationService]:
    store = store if store is not None else open_store(settings)
    pitch_repo = PitchRepository(store)
    reservation_repo = ReservationRepository(store)
    return CatalogService(pitch_repo), ReservationService(pitch_repo, reservation_repo)


def build_server(settings: Settings, store=None, host: str = "") -> BookingHTTPServer:
    catalog_service, reservation_service = build_services(settings, store)
    return BookingHTTPServer((host, settings.server_port), settings, catalog_service, reservation_service)


def run():
    settings = Settings.from_env()
    logging.basicConfig(
        level=settings.log_level,
        format="%(asctime)s %(levelname)s %(name)s: %(message)s",
    )
    httpd = build_server(settings)
    logger.info(f"Server running on http://localhost:{httpd.server_address[1]} ({settings.store_backend} store)")
    try:
        httpd.serve_forever()
    except KeyboardInterrupt:
        logger.info("Shutting down")
    finally:
        httpd.server_close()


if __name__ == "__main__":
    run()

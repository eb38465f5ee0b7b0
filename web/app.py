"""Flask web application for the daily fleet status dashboard."""

import logging
import os
from datetime import date
from functools import wraps

from flask import Flask, render_template, request, redirect, url_for, flash, session

from backend.client import BackendClient
from backend.config import Settings, load_settings
from backend.repository import FleetRepository
from backend.weather import WeatherService
from backend.webhook import collect_payload, format_long_date, send_webhook
from models.daily_status import (
    DAY_SORT_COLUMNS,
    filter_by_name,
    sort_day_statuses,
    truncate_note,
)
from models.errors import AuthError, BackendError, ValidationError, WebhookError
from models.general_info import FIELDS, GeneralInfo
from models.session import UserSession
from models.stats import count_statuses
from models.status import NO_DATA_COLOR, Status, status_color, status_label
from models.timeline import SORT_COLUMNS, format_month, parse_month, shift_month
from models.vehicle import VehicleType

from web.charts import fleet_chart, situation_chart

logger = logging.getLogger(__name__)

app = Flask(__name__)
app.secret_key = os.environ.get("SECRET_KEY", "dev-secret-key-change-in-prod")


# =============================================================================
# Wiring
# =============================================================================


def configure(settings: Settings) -> None:
    """Apply settings to the app and build the backend services."""
    app.secret_key = settings.secret_key
    client = BackendClient(settings.backend_url, settings.backend_key, settings.request_timeout)
    app.extensions["fleet_settings"] = settings
    app.extensions["fleet_client"] = client
    app.extensions["fleet_repository"] = FleetRepository(client)
    app.extensions["fleet_weather"] = WeatherService(
        settings.weather_key,
        settings.weather_city,
        settings.weather_refresh_seconds,
        settings.request_timeout,
    )


def _extension(name: str):
    if name not in app.extensions:
        configure(load_settings())
    return app.extensions[name]


def get_settings() -> Settings:
    return _extension("fleet_settings")


def get_client() -> BackendClient:
    return _extension("fleet_client")


def get_repository() -> FleetRepository:
    return _extension("fleet_repository")


def get_weather() -> WeatherService:
    return _extension("fleet_weather")


# =============================================================================
# Request helpers
# =============================================================================


def current_user():
    """Signed-in user from the session cookie, or None."""
    data = session.get("user")
    if not data:
        return None
    return UserSession.from_dict(data)


def login_required(view):
    """Redirect anonymous users to the login page; pass the user to the view."""

    @wraps(view)
    def wrapper(*args, **kwargs):
        user = current_user()
        if user is None:
            return redirect(url_for("auth"))
        return view(user, *args, **kwargs)

    return wrapper


def today() -> str:
    return date.today().isoformat()


def selected_date() -> str:
    """Date from the form or query string, today if missing or malformed."""
    value = request.form.get("date") or request.args.get("date")
    if not value:
        return today()
    try:
        return date.fromisoformat(value).isoformat()
    except ValueError:
        flash(f"Data inválida: {value}", "error")
        return today()


def report_failure(action: str, error: BackendError) -> None:
    """Log a failed backend call and tell the user which action failed."""
    if isinstance(error, AuthError):
        raise error
    logger.error("%s: %s", action, error)
    flash(f"{action}: {error}", "error")


@app.errorhandler(AuthError)
def handle_auth_error(error):
    """Rejected token: drop the session and send the user to log in."""
    logger.warning("Backend rejected session: %s", error)
    session.pop("user", None)
    flash("Sessão expirada. Entre novamente.", "error")
    return redirect(url_for("auth"))


# =============================================================================
# Template filters
# =============================================================================


def format_br_date(value):
    """Format an ISO date as dd/mm/yyyy."""
    if not value:
        return "—"
    return date.fromisoformat(value[:10]).strftime("%d/%m/%Y")


def day_of_month(value):
    return date.fromisoformat(value).day


app.jinja_env.filters["status_color"] = status_color
app.jinja_env.filters["status_label"] = status_label
app.jinja_env.filters["truncate_note"] = truncate_note
app.jinja_env.filters["format_long_date"] = format_long_date
app.jinja_env.filters["format_br_date"] = format_br_date
app.jinja_env.filters["day_of_month"] = day_of_month


@app.context_processor
def inject_user():
    return {"user": current_user()}


# =============================================================================
# Auth
# =============================================================================


@app.route("/auth", methods=["GET", "POST"])
def auth():
    """Login and sign-up form."""
    if request.method == "GET":
        if current_user() is not None:
            return redirect(url_for("index"))
        return render_template("auth.html", mode=request.args.get("mode", "login"))

    mode = request.form.get("mode", "login")
    email = (request.form.get("email") or "").strip()
    password = request.form.get("password") or ""
    full_name = (request.form.get("full_name") or "").strip()

    if not email or not password:
        flash("Informe e-mail e senha", "error")
        return redirect(url_for("auth", mode=mode))

    client = get_client()
    if mode == "signup":
        try:
            client.sign_up(email, password, full_name)
        except BackendError as e:
            logger.error("Sign-up failed for %s: %s", email, e)
            flash(f"Erro no cadastro: {e}", "error")
            return redirect(url_for("auth", mode="signup"))
        flash("Cadastro realizado com sucesso. Agora você pode fazer login no sistema.", "success")
        return redirect(url_for("auth"))

    try:
        user = client.sign_in(email, password)
    except BackendError as e:
        logger.warning("Login failed for %s: %s", email, e)
        flash(f"Erro no login: {e}", "error")
        return redirect(url_for("auth"))

    if not user.full_name:
        try:
            profile = get_repository().get_profile(user)
        except BackendError as e:
            logger.warning("Profile lookup failed for %s: %s", user.user_id, e)
            profile = None
        if profile:
            user.full_name = profile.get("full_name")

    session["user"] = user.to_dict()
    flash("Login realizado com sucesso. Bem-vindo ao sistema de gestão de frota!", "success")
    return redirect(url_for("index"))


@app.route("/logout", methods=["POST"])
def logout():
    user = current_user()
    session.pop("user", None)
    if user is not None:
        try:
            get_client().sign_out(user.access_token)
        except BackendError as e:
            logger.warning("Sign-out call failed: %s", e)
    flash("Logout realizado. Até breve!", "success")
    return redirect(url_for("auth"))


# =============================================================================
# Dashboard
# =============================================================================


@app.route("/")
@login_required
def index(user: UserSession):
    """Dashboard for one date: stats, vehicle table, charts, sidebar."""
    day = selected_date()
    search = request.args.get("q", "").strip()
    sort = request.args.get("sort", "name")
    if sort not in DAY_SORT_COLUMNS:
        sort = "name"
    descending = request.args.get("dir") == "desc"

    repo = get_repository()

    records = []
    try:
        records = repo.statuses_for_date(user, day)
    except BackendError as e:
        report_failure("Erro ao carregar veículos", e)

    info = GeneralInfo()
    has_info = False
    try:
        info = repo.get_general_info(user, day)
        has_info = repo.has_general_info(user, day)
    except BackendError as e:
        report_failure("Erro ao carregar informativo geral", e)

    observations = []
    try:
        observations = repo.observations_for_date(user, day)
    except BackendError as e:
        report_failure("Erro ao carregar observações", e)

    stats = count_statuses(records)
    rows = sort_day_statuses(filter_by_name(records, search), sort, descending)

    return render_template(
        "index.html",
        user=user,
        day=day,
        search=search,
        sort=sort,
        descending=descending,
        rows=rows,
        stats=stats,
        info=info,
        has_info=has_info,
        editing_info=request.args.get("edit_info") == "1",
        info_fields=FIELDS,
        observations=observations,
        situation_chart=situation_chart(info),
        fleet_chart=fleet_chart(stats),
    )


@app.route("/weather")
def weather_partial():
    """HTMX partial: weather card, re-polled hourly by the page."""
    report = get_weather().current()
    return render_template("partials/weather.html", report=report, city=get_settings().weather_city)


@app.route("/copy-previous", methods=["POST"])
@login_required
def copy_previous(user: UserSession):
    """Overwrite the date's status rows with the previous day's."""
    day = selected_date()
    try:
        copied = get_repository().copy_previous_day(user, day)
    except BackendError as e:
        report_failure("Erro ao copiar dados", e)
        return redirect(url_for("index", date=day))

    if copied == 0:
        flash("Não há dados do dia anterior para copiar.", "warning")
    else:
        flash(f"Dados do dia anterior copiados com sucesso! ({copied} veículos)", "success")
    return redirect(url_for("index", date=day))


@app.route("/hook", methods=["POST"])
@login_required
def send_hook(user: UserSession):
    """Push the day's summary to the configured webhook."""
    day = selected_date()
    settings = get_settings()
    if not settings.webhook_url:
        flash("Webhook não configurado", "error")
        return redirect(url_for("index", date=day))

    try:
        payload = collect_payload(get_repository(), user, day)
    except BackendError as e:
        report_failure("Falha ao enviar dados para o webhook", e)
        return redirect(url_for("index", date=day))

    try:
        send_webhook(settings.webhook_url, payload, settings.request_timeout)
    except WebhookError as e:
        logger.error("Webhook failed: %s", e)
        flash("Falha ao enviar dados para o webhook", "error")
        return redirect(url_for("index", date=day))

    flash("Informações enviadas para o webhook com sucesso!", "success")
    return redirect(url_for("index", date=day))


# =============================================================================
# Vehicles
# =============================================================================


def _vehicle_form_values():
    """Parse the vehicle form. Raises ValidationError on bad input."""
    name = (request.form.get("name") or "").strip()
    if not name:
        raise ValidationError("Informe a placa do veículo")
    try:
        vehicle_type = VehicleType(request.form.get("type") or VehicleType.OUTROS.value)
    except ValueError:
        raise ValidationError("Tipo de veículo inválido") from None
    status = Status.from_value(request.form.get("status"))
    if status is None:
        raise ValidationError("Status inválido")
    driver = (request.form.get("driver") or "").strip() or None
    observations = request.form.get("observations") or ""
    return name, vehicle_type, driver, status, observations


def _render_vehicle_form(user, day, vehicle=None, current=None):
    repo = get_repository()
    plates, drivers = [], []
    try:
        plates = repo.existing_plates(user)
        drivers = repo.existing_drivers(user)
    except BackendError as e:
        # Suggestions only; the form still works without them
        logger.warning("Could not load autocomplete data: %s", e)
    return render_template(
        "vehicle_form.html",
        day=day,
        vehicle=vehicle,
        current=current,
        plates=plates,
        drivers=drivers,
        statuses=list(Status),
        types=list(VehicleType),
    )


@app.route("/vehicles/new", methods=["GET"])
@login_required
def new_vehicle_form(user: UserSession):
    return _render_vehicle_form(user, selected_date())


@app.route("/vehicles/new", methods=["POST"])
@login_required
def create_vehicle(user: UserSession):
    """Create a vehicle with its status for the selected date."""
    day = selected_date()
    try:
        name, vehicle_type, driver, status, observations = _vehicle_form_values()
    except ValidationError as e:
        flash(str(e), "error")
        return redirect(url_for("new_vehicle_form", date=day))

    try:
        get_repository().create_vehicle(user, name, vehicle_type, driver, day, status, observations)
    except BackendError as e:
        report_failure("Erro ao salvar veículo", e)
        return redirect(url_for("index", date=day))

    flash("Veículo adicionado com sucesso!", "success")
    return redirect(url_for("index", date=day))


@app.route("/vehicles/<vehicle_id>/edit", methods=["GET"])
@login_required
def edit_vehicle_form(user: UserSession, vehicle_id: str):
    day = selected_date()
    repo = get_repository()
    try:
        vehicle = repo.get_vehicle(user, vehicle_id)
        current = repo.get_vehicle_status(user, vehicle_id, day) if vehicle else None
    except BackendError as e:
        report_failure("Erro ao carregar veículo", e)
        return redirect(url_for("index", date=day))

    if vehicle is None:
        flash("Veículo não encontrado", "error")
        return redirect(url_for("index", date=day))
    return _render_vehicle_form(user, day, vehicle, current)


@app.route("/vehicles/<vehicle_id>/edit", methods=["POST"])
@login_required
def update_vehicle(user: UserSession, vehicle_id: str):
    """Save vehicle fields and upsert its status for the selected date."""
    day = selected_date()
    try:
        name, vehicle_type, driver, status, observations = _vehicle_form_values()
    except ValidationError as e:
        flash(str(e), "error")
        return redirect(url_for("edit_vehicle_form", vehicle_id=vehicle_id, date=day))

    repo = get_repository()
    try:
        vehicle = repo.get_vehicle(user, vehicle_id)
        if vehicle is None:
            flash("Veículo não encontrado", "error")
            return redirect(url_for("index", date=day))
        vehicle.name = name
        vehicle.type = vehicle_type
        vehicle.driver = driver
        repo.update_vehicle(user, vehicle, day, status, observations)
    except BackendError as e:
        report_failure("Erro ao salvar veículo", e)
        return redirect(url_for("index", date=day))

    flash("Veículo atualizado com sucesso!", "success")
    return redirect(url_for("index", date=day))


@app.route("/vehicles/<vehicle_id>/delete", methods=["GET"])
@login_required
def confirm_delete_vehicle(user: UserSession, vehicle_id: str):
    """Confirmation page; nothing is deleted until the form is posted."""
    day = selected_date()
    try:
        vehicle = get_repository().get_vehicle(user, vehicle_id)
    except BackendError as e:
        report_failure("Erro ao carregar veículo", e)
        return redirect(url_for("index", date=day))
    if vehicle is None:
        flash("Veículo não encontrado", "error")
        return redirect(url_for("index", date=day))
    return render_template(
        "confirm_delete.html",
        day=day,
        message=f"Tem certeza que deseja excluir o veículo {vehicle.name}?",
        action=url_for("delete_vehicle", vehicle_id=vehicle_id),
    )


@app.route("/vehicles/<vehicle_id>/delete", methods=["POST"])
@login_required
def delete_vehicle(user: UserSession, vehicle_id: str):
    day = selected_date()
    if request.form.get("confirm") != "yes":
        return redirect(url_for("confirm_delete_vehicle", vehicle_id=vehicle_id, date=day))

    try:
        get_repository().delete_vehicle(user, vehicle_id)
    except BackendError as e:
        report_failure("Erro ao excluir veículo", e)
        return redirect(url_for("index", date=day))

    flash("Veículo removido com sucesso!", "success")
    return redirect(url_for("index", date=day))


# =============================================================================
# Timeline
# =============================================================================


@app.route("/timeline")
@login_required
def timeline(user: UserSession):
    """Monthly vehicle x day grid."""
    month_arg = request.args.get("month") or selected_date()[:7]
    try:
        year, month = parse_month(month_arg)
    except ValidationError as e:
        flash(str(e), "error")
        year, month = parse_month(today()[:7])

    sort = request.args.get("sort", "name")
    if sort not in SORT_COLUMNS:
        sort = "name"
    descending = request.args.get("dir") == "desc"

    grid = None
    try:
        grid = get_repository().timeline(user, year, month)
    except BackendError as e:
        report_failure("Erro ao carregar timeline", e)

    context = dict(
        month=format_month(year, month),
        prev_month=format_month(*shift_month(year, month, -1)),
        next_month=format_month(*shift_month(year, month, 1)),
        dates=grid.dates if grid else [],
        rows=grid.sorted_rows(sort, descending) if grid else [],
        sort=sort,
        descending=descending,
        statuses=list(Status),
        no_data_color=NO_DATA_COLOR,
    )

    if request.headers.get("HX-Request"):
        return render_template("partials/timeline_table.html", **context)
    return render_template("timeline.html", **context)


# =============================================================================
# Daily observations
# =============================================================================


@app.route("/observations", methods=["POST"])
@login_required
def save_observation(user: UserSession):
    """Create or replace the observation for a date."""
    day = selected_date()
    observation_date = request.form.get("observation_date") or day
    content = (request.form.get("content") or "").strip()
    if not content:
        flash("Digite uma observação antes de salvar", "error")
        return redirect(url_for("index", date=day))

    try:
        date.fromisoformat(observation_date)
    except ValueError:
        flash(f"Data inválida: {observation_date}", "error")
        return redirect(url_for("index", date=day))

    try:
        get_repository().save_observation(user, observation_date, content)
    except BackendError as e:
        report_failure("Erro ao salvar observações", e)
        return redirect(url_for("index", date=day))

    flash("Observações salvas com sucesso!", "success")
    return redirect(url_for("index", date=day))


@app.route("/observations/<observation_id>/edit", methods=["POST"])
@login_required
def edit_observation(user: UserSession, observation_id: str):
    day = selected_date()
    content = (request.form.get("content") or "").strip()
    if not content:
        flash("A observação não pode ficar vazia", "error")
        return redirect(url_for("index", date=day))

    try:
        get_repository().update_observation(user, observation_id, content)
    except BackendError as e:
        report_failure("Erro ao editar observação", e)
        return redirect(url_for("index", date=day))

    flash("Observação editada com sucesso!", "success")
    return redirect(url_for("index", date=day))


@app.route("/observations/<observation_id>/delete", methods=["GET"])
@login_required
def confirm_delete_observation(user: UserSession, observation_id: str):
    day = selected_date()
    try:
        observation = get_repository().get_observation(user, observation_id)
    except BackendError as e:
        report_failure("Erro ao carregar observação", e)
        return redirect(url_for("index", date=day))
    if observation is None:
        flash("Observação não encontrada", "error")
        return redirect(url_for("index", date=day))
    return render_template(
        "confirm_delete.html",
        day=day,
        message="Tem certeza que deseja excluir esta observação?",
        detail=truncate_note(observation.content),
        action=url_for("delete_observation", observation_id=observation_id),
    )


@app.route("/observations/<observation_id>/delete", methods=["POST"])
@login_required
def delete_observation(user: UserSession, observation_id: str):
    day = selected_date()
    if request.form.get("confirm") != "yes":
        return redirect(url_for("confirm_delete_observation", observation_id=observation_id, date=day))

    try:
        get_repository().delete_observation(user, observation_id)
    except BackendError as e:
        report_failure("Erro ao excluir observação", e)
        return redirect(url_for("index", date=day))

    flash("Observação excluída com sucesso!", "success")
    return redirect(url_for("index", date=day))


# =============================================================================
# General info
# =============================================================================


@app.route("/general-info", methods=["POST"])
@login_required
def save_general_info(user: UserSession):
    """Save the date's four operational counters."""
    day = selected_date()
    try:
        info = GeneralInfo.from_form(request.form)
    except ValidationError as e:
        flash(str(e), "error")
        return redirect(url_for("index", date=day, edit_info=1))

    try:
        get_repository().save_general_info(user, day, info)
    except BackendError as e:
        report_failure("Erro ao salvar informativo geral", e)
        return redirect(url_for("index", date=day))

    flash("Informativo geral salvo com sucesso!", "success")
    return redirect(url_for("index", date=day))


if __name__ == "__main__":
    settings = load_settings()
    logging.basicConfig(
        level=settings.log_level,
        format="%(asctime)s %(levelname)s %(name)s: %(message)s",
    )
    configure(settings)
    # Using 5001 to avoid conflict with macOS AirPlay Receiver on 5000
    app.run(debug=True, host="0.0.0.0", port=5001)

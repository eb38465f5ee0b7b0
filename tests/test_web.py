#!/usr/bin/env python3
"""Tests for the Flask routes, with the backend replaced by fakes."""

import pytest

import web.app as web_app
from backend.config import Settings
from models import (
    AuthError,
    BackendError,
    DailyObservation,
    DailyStatus,
    GeneralInfo,
    UserSession,
    Vehicle,
    VehicleType,
    WebhookError,
    build_timeline,
)
from models.stats import FleetStats
from web.charts import fleet_chart, situation_chart

USER = UserSession("u1", "ana@example.com", "jwt", "Ana Lima")


def record(vehicle_id, name, status, day="2024-03-01", vehicle_type=VehicleType.DESTACK):
    vehicle = Vehicle(vehicle_id, name, vehicle_type)
    return DailyStatus(vehicle_id, day, status, vehicle=vehicle)


class FakeRepository:
    """Records every call; reads return canned data."""

    def __init__(self):
        self.calls = []
        self.records = [
            record("v1", "ABC1D23", "Funcionando - Operando"),
            record("v2", "XYZ9K87", "Manutenção - Veiculo", vehicle_type=VehicleType.EMBASA),
        ]
        self.copied = 0
        self.error = None

    def _call(self, name, *args):
        self.calls.append((name,) + args)
        if self.error:
            raise self.error

    def names(self):
        return [call[0] for call in self.calls]

    def statuses_for_date(self, session, day):
        self._call("statuses_for_date", day)
        return self.records

    def get_general_info(self, session, day):
        return GeneralInfo(extravasamento=4)

    def has_general_info(self, session, day):
        return True

    def observations_for_date(self, session, day):
        return [DailyObservation(day, "Chuva forte na base", id="o1")]

    def copy_previous_day(self, session, day):
        self._call("copy_previous_day", day)
        return self.copied

    def get_vehicle(self, session, vehicle_id):
        if vehicle_id == "missing":
            return None
        return Vehicle(vehicle_id, "ABC1D23", VehicleType.DESTACK, "João")

    def get_vehicle_status(self, session, vehicle_id, day):
        return None

    def existing_plates(self, session):
        return ["ABC1D23"]

    def existing_drivers(self, session):
        return ["João"]

    def create_vehicle(self, session, name, vehicle_type, driver, day, status, observations):
        self._call("create_vehicle", name, vehicle_type, driver, day, status, observations)

    def update_vehicle(self, session, vehicle, day, status, observations):
        self._call("update_vehicle", vehicle.name, vehicle.type, day, status)

    def delete_vehicle(self, session, vehicle_id):
        self._call("delete_vehicle", vehicle_id)

    def timeline(self, session, year, month):
        self._call("timeline", year, month)
        return build_timeline(year, month, [record("v1", "ABC1D23", "Emprestado", "2024-03-03")])

    def get_observation(self, session, observation_id):
        return DailyObservation("2024-03-01", "Chuva forte na base", id=observation_id)

    def save_observation(self, session, day, content):
        self._call("save_observation", day, content)

    def update_observation(self, session, observation_id, content):
        self._call("update_observation", observation_id, content)

    def delete_observation(self, session, observation_id):
        self._call("delete_observation", observation_id)

    def save_general_info(self, session, day, info):
        self._call("save_general_info", day, info)

    def get_profile(self, session):
        return {"id": session.user_id, "full_name": "Perfil Nome"}


class FakeAuthClient:
    def __init__(self):
        self.fail = False
        self.signed_out = []

    def sign_in(self, email, password):
        if self.fail:
            raise AuthError("Invalid login credentials", status_code=400)
        return UserSession("u9", email, "new-jwt")

    def sign_up(self, email, password, full_name):
        pass

    def sign_out(self, token):
        self.signed_out.append(token)


class FakeWeather:
    def current(self):
        return None


@pytest.fixture
def repo():
    return FakeRepository()


@pytest.fixture
def auth_client():
    return FakeAuthClient()


@pytest.fixture
def client(monkeypatch, repo, auth_client):
    settings = Settings(backend_url="https://db.example.com", backend_key="k")
    monkeypatch.setitem(web_app.app.config, "TESTING", True)
    monkeypatch.setitem(web_app.app.extensions, "fleet_settings", settings)
    monkeypatch.setitem(web_app.app.extensions, "fleet_client", auth_client)
    monkeypatch.setitem(web_app.app.extensions, "fleet_repository", repo)
    monkeypatch.setitem(web_app.app.extensions, "fleet_weather", FakeWeather())
    return web_app.app.test_client()


@pytest.fixture
def logged_in(client):
    with client.session_transaction() as sess:
        sess["user"] = USER.to_dict()
    return client


def text(response):
    return response.get_data(as_text=True)


# =============================================================================
# Auth
# =============================================================================


class TestAuth:
    """Tests for login, logout and the login guard."""

    def test_anonymous_redirected(self, client):
        response = client.get("/")
        assert response.status_code == 302
        assert response.headers["Location"].endswith("/auth")

    def test_login_page(self, client):
        response = client.get("/auth")
        assert response.status_code == 200
        assert "Entrar" in text(response)

    def test_login_stores_session(self, client):
        response = client.post("/auth", data={"email": "bia@example.com", "password": "x"})
        assert response.status_code == 302
        with client.session_transaction() as sess:
            assert sess["user"]["email"] == "bia@example.com"
            # Name filled from the profile row
            assert sess["user"]["full_name"] == "Perfil Nome"

    def test_login_failure(self, client, auth_client):
        auth_client.fail = True
        response = client.post(
            "/auth", data={"email": "bia@example.com", "password": "bad"}, follow_redirects=True
        )
        assert "Erro no login" in text(response)
        with client.session_transaction() as sess:
            assert "user" not in sess

    def test_missing_fields(self, client):
        response = client.post("/auth", data={"email": ""}, follow_redirects=True)
        assert "Informe e-mail e senha" in text(response)

    def test_signup(self, client):
        response = client.post(
            "/auth",
            data={"mode": "signup", "email": "c@example.com", "password": "x", "full_name": "C"},
            follow_redirects=True,
        )
        assert "Cadastro realizado com sucesso" in text(response)

    def test_logout(self, logged_in, auth_client):
        logged_in.post("/logout")
        assert auth_client.signed_out == ["jwt"]
        with logged_in.session_transaction() as sess:
            assert "user" not in sess

    def test_rejected_token_clears_session(self, logged_in, repo):
        repo.error = AuthError("JWT expired", status_code=401)
        response = logged_in.get("/?date=2024-03-01")
        assert response.status_code == 302
        assert response.headers["Location"].endswith("/auth")
        with logged_in.session_transaction() as sess:
            assert "user" not in sess


# =============================================================================
# Dashboard
# =============================================================================


class TestDashboard:
    """Tests for the dashboard page."""

    def test_renders_vehicles_and_stats(self, logged_in):
        response = logged_in.get("/?date=2024-03-01")
        assert response.status_code == 200
        body = text(response)
        assert "ABC1D23" in body
        assert "XYZ9K87" in body
        assert "50% da frota" in body
        assert "sexta-feira, 1 de março de 2024" in body
        assert "Ana Lima" in body

    def test_search_filters_table(self, logged_in):
        body = text(logged_in.get("/?date=2024-03-01&q=xyz"))
        assert "XYZ9K87" in body
        assert "ABC1D23" not in body

    def test_backend_failure_flashed(self, logged_in, repo):
        repo.error = BackendError("timeout")
        response = logged_in.get("/?date=2024-03-01")
        assert response.status_code == 200
        assert "Erro ao carregar veículos" in text(response)

    def test_invalid_date_falls_back(self, logged_in):
        response = logged_in.get("/?date=2024-02-30")
        assert response.status_code == 200
        assert "Data inválida" in text(response)

    def test_weather_placeholder(self, logged_in):
        body = text(logged_in.get("/weather"))
        assert "--°C" in body
        assert "Clima indisponível no momento" in body


class TestCopyPrevious:
    """Tests for copying the previous day's statuses."""

    def test_nothing_to_copy(self, logged_in, repo):
        response = logged_in.post("/copy-previous", data={"date": "2024-03-02"}, follow_redirects=True)
        assert "Não há dados do dia anterior para copiar." in text(response)
        assert ("copy_previous_day", "2024-03-02") in repo.calls

    def test_copied(self, logged_in, repo):
        repo.copied = 3
        response = logged_in.post("/copy-previous", data={"date": "2024-03-02"}, follow_redirects=True)
        assert "3 veículos" in text(response)


# =============================================================================
# Vehicles
# =============================================================================


class TestVehicles:
    """Tests for vehicle create, edit and delete."""

    def test_new_form(self, logged_in):
        body = text(logged_in.get("/vehicles/new?date=2024-03-01"))
        assert "Adicionar veículo" in body
        assert "Manutenção - Equipamento" in body

    def test_create(self, logged_in, repo):
        response = logged_in.post(
            "/vehicles/new",
            data={
                "date": "2024-03-01",
                "name": " NEW1A23 ",
                "type": "A.CUNHA",
                "driver": "",
                "status": "Emprestado",
                "observations": "",
            },
            follow_redirects=True,
        )
        assert "Veículo adicionado com sucesso!" in text(response)
        call = [c for c in repo.calls if c[0] == "create_vehicle"][0]
        assert call[1] == "NEW1A23"
        assert call[2] == VehicleType.A_CUNHA
        assert call[3] is None
        assert call[5].value == "Emprestado"

    def test_create_rejects_unknown_status(self, logged_in, repo):
        response = logged_in.post(
            "/vehicles/new",
            data={"date": "2024-03-01", "name": "NEW", "status": "Sucata"},
            follow_redirects=True,
        )
        assert "Status inválido" in text(response)
        assert "create_vehicle" not in repo.names()

    def test_create_requires_plate(self, logged_in, repo):
        response = logged_in.post(
            "/vehicles/new", data={"status": "Emprestado"}, follow_redirects=True
        )
        assert "Informe a placa do veículo" in text(response)
        assert "create_vehicle" not in repo.names()

    def test_edit_form(self, logged_in):
        body = text(logged_in.get("/vehicles/v1/edit?date=2024-03-01"))
        assert "Editar veículo" in body
        assert "ABC1D23" in body

    def test_edit_missing_vehicle(self, logged_in):
        response = logged_in.get("/vehicles/missing/edit", follow_redirects=True)
        assert "Veículo não encontrado" in text(response)

    def test_update(self, logged_in, repo):
        response = logged_in.post(
            "/vehicles/v1/edit",
            data={"date": "2024-03-05", "name": "ABC1D23", "type": "EMBASA", "status": "Funcionando - Parado"},
            follow_redirects=True,
        )
        assert "Veículo atualizado com sucesso!" in text(response)
        call = [c for c in repo.calls if c[0] == "update_vehicle"][0]
        assert call[2] == VehicleType.EMBASA
        assert call[3] == "2024-03-05"

    def test_delete_needs_confirmation(self, logged_in, repo):
        response = logged_in.get("/vehicles/v1/delete?date=2024-03-01")
        assert "Tem certeza que deseja excluir o veículo ABC1D23?" in text(response)
        assert "delete_vehicle" not in repo.names()

    def test_delete_without_confirm_flag(self, logged_in, repo):
        response = logged_in.post("/vehicles/v1/delete", data={"date": "2024-03-01"})
        assert response.status_code == 302
        assert "delete_vehicle" not in repo.names()

    def test_delete_confirmed(self, logged_in, repo):
        response = logged_in.post(
            "/vehicles/v1/delete", data={"date": "2024-03-01", "confirm": "yes"}, follow_redirects=True
        )
        assert "Veículo removido com sucesso!" in text(response)
        assert ("delete_vehicle", "v1") in repo.calls


# =============================================================================
# Timeline
# =============================================================================


class TestTimeline:
    """Tests for the timeline page and its HTMX partial."""

    def test_full_page(self, logged_in, repo):
        body = text(logged_in.get("/timeline?month=2024-03"))
        assert "<html" in body
        assert "Timeline de Status" in body
        assert "ABC1D23" in body
        assert "2024-02" in body
        assert "2024-04" in body
        assert ("timeline", 2024, 3) in repo.calls

    def test_partial_for_htmx(self, logged_in):
        response = logged_in.get("/timeline?month=2024-02", headers={"HX-Request": "true"})
        body = text(response)
        assert "<html" not in body
        assert "ABC1D23" in body
        # 29 day columns in a leap February
        assert body.count("w-6 text-center") == 29

    def test_invalid_month(self, logged_in):
        response = logged_in.get("/timeline?month=2024-13")
        assert "Mês inválido" in text(response)

    @pytest.mark.parametrize("month", ["0000-03", "9999-12"])
    def test_month_outside_calendar(self, logged_in, month):
        response = logged_in.get(f"/timeline?month={month}")
        assert response.status_code == 200
        assert "Mês inválido" in text(response)

    def test_sort_travels_with_month_picker(self, logged_in):
        response = logged_in.get(
            "/timeline?month=2024-03&sort=driver&dir=desc", headers={"HX-Request": "true"}
        )
        body = text(response)
        assert 'name="sort" value="driver" form="month-picker"' in body
        assert 'name="dir" value="desc" form="month-picker"' in body


# =============================================================================
# Observations, general info, webhook
# =============================================================================


class TestObservations:
    """Tests for daily observations."""

    def test_save(self, logged_in, repo):
        response = logged_in.post(
            "/observations",
            data={"date": "2024-03-01", "observation_date": "2024-03-01", "content": " Pátio alagado "},
            follow_redirects=True,
        )
        assert "Observações salvas com sucesso!" in text(response)
        assert ("save_observation", "2024-03-01", "Pátio alagado") in repo.calls

    def test_blank_rejected(self, logged_in, repo):
        response = logged_in.post(
            "/observations", data={"date": "2024-03-01", "content": "   "}, follow_redirects=True
        )
        assert "Digite uma observação antes de salvar" in text(response)
        assert "save_observation" not in repo.names()

    def test_edit(self, logged_in, repo):
        logged_in.post("/observations/o1/edit", data={"date": "2024-03-01", "content": "novo"})
        assert ("update_observation", "o1", "novo") in repo.calls

    def test_delete_flow(self, logged_in, repo):
        page = text(logged_in.get("/observations/o1/delete?date=2024-03-01"))
        assert "Tem certeza que deseja excluir esta observação?" in page
        assert "delete_observation" not in repo.names()

        logged_in.post("/observations/o1/delete", data={"date": "2024-03-01", "confirm": "yes"})
        assert ("delete_observation", "o1") in repo.calls


class TestGeneralInfo:
    """Tests for saving the general info counters."""

    def test_save(self, logged_in, repo):
        response = logged_in.post(
            "/general-info",
            data={"date": "2024-03-01", "extravasamento": "2", "servico_turma_02": "",
                  "servico_turma_05": "1", "oge": "0"},
            follow_redirects=True,
        )
        assert "Informativo geral salvo com sucesso!" in text(response)
        call = [c for c in repo.calls if c[0] == "save_general_info"][0]
        assert call[2] == GeneralInfo(extravasamento=2, servico_turma_05=1)

    def test_invalid_value(self, logged_in, repo):
        response = logged_in.post(
            "/general-info", data={"date": "2024-03-01", "oge": "muitos"}, follow_redirects=True
        )
        assert "Valor inválido para OGE: muitos" in text(response)
        assert "save_general_info" not in repo.names()


class TestHook:
    """Tests for the webhook push."""

    def test_not_configured(self, logged_in):
        response = logged_in.post("/hook", data={"date": "2024-03-01"}, follow_redirects=True)
        assert "Webhook não configurado" in text(response)

    def test_sent(self, logged_in, monkeypatch):
        sent = []
        settings = Settings(
            backend_url="https://db.example.com", backend_key="k", webhook_url="https://hook.example.com"
        )
        monkeypatch.setitem(web_app.app.extensions, "fleet_settings", settings)
        monkeypatch.setattr(web_app, "send_webhook", lambda url, payload, timeout: sent.append((url, payload)))

        response = logged_in.post("/hook", data={"date": "2024-03-01"}, follow_redirects=True)
        assert "Informações enviadas para o webhook com sucesso!" in text(response)
        url, payload = sent[0]
        assert url == "https://hook.example.com"
        assert payload["resumo_frota"]["total"] == 2
        assert payload["usuario"]["nome"] == "Ana Lima"

    def test_failure(self, logged_in, monkeypatch):
        settings = Settings(
            backend_url="https://db.example.com", backend_key="k", webhook_url="https://hook.example.com"
        )
        monkeypatch.setitem(web_app.app.extensions, "fleet_settings", settings)

        def fail(url, payload, timeout):
            raise WebhookError("down")

        monkeypatch.setattr(web_app, "send_webhook", fail)
        response = logged_in.post("/hook", data={"date": "2024-03-01"}, follow_redirects=True)
        assert "Falha ao enviar dados para o webhook" in text(response)


class TestCharts:
    """Tests for the Chart.js data builders."""

    def test_situation_chart(self):
        chart = situation_chart(GeneralInfo(1, 2, 3, 4))
        assert chart["labels"] == ["Extravasamento", "Serviço Turma 02", "Serviço Turma 05", "OGE"]
        assert chart["datasets"][0]["data"] == [1, 2, 3, 4]

    def test_fleet_chart(self):
        chart = fleet_chart(FleetStats(total=6, funcionando=3, quebrado=2, emprestado=1))
        assert chart["datasets"][0]["data"] == [3, 2, 1]

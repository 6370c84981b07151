"""
Tests d'intégration API pour les QR codes de présence.
Endpoints : POST /api/qr-codes/generate, POST /api/qr-codes/scan, GET /api/qr-codes/{id}/image
"""

from unittest.mock import patch

from unisync.exceptions import AlreadyMarked, MalformedQrCode, QrCodeExpired, QrCodeNotFound

NOW_PATH = "unisync.services.qr_code_service._now_ms"


# --- Helpers ---

def generate(client, **kwargs):
    payload = {"courseId": "CS101", "classDate": 1000000, "durationMinutes": 15}
    payload.update(kwargs)
    return client.post("/api/qr-codes/generate", json=payload)


def scan(client, qr_data, student_id="S1", **kwargs):
    return client.post("/api/qr-codes/scan", json={"qrData": qr_data, "studentId": student_id, **kwargs})


# ============================================================
# POST /api/qr-codes/generate
# ============================================================

def test_generate_succes(client, store):
    """Génération valide → 201, QR code en camelCase, enseignant connecté par défaut."""
    response = generate(client)

    assert response.status_code == 201
    body = response.json()
    assert body["success"] is True
    assert body["message"] == "QR code generated successfully"
    data = body["data"]
    assert data["courseId"] == "CS101"
    assert data["lecturerId"] == "L1"
    assert data["classDate"] == 1000000
    assert data["expiresAt"] == 1900000
    assert data["isActive"] is True
    assert store.get("qrCodes", data["id"]) is not None


def test_generate_lecturer_explicite(client):
    response = generate(client, lecturerId="L42", classDate="1000000")

    assert response.status_code == 201
    assert response.json()["data"]["lecturerId"] == "L42"


def test_generate_course_id_manquant(client):
    response = client.post("/api/qr-codes/generate", json={"classDate": 1000000})

    assert response.status_code == 400
    assert response.json()["success"] is False


def test_generate_class_date_manquant(client):
    response = client.post("/api/qr-codes/generate", json={"courseId": "CS101"})
    assert response.status_code == 400


def test_generate_class_date_invalide(client):
    response = generate(client, classDate="demain")

    assert response.status_code == 400
    assert "classDate" in response.json()["error"]


def test_generate_role_etudiant_refuse(client, current_user):
    current_user["role"] = "STUDENT"

    response = generate(client)

    assert response.status_code == 403
    assert response.json()["error"] == "Insufficient permissions"


# ============================================================
# POST /api/qr-codes/scan: contrat du router
# ============================================================

def test_scan_erreurs_mappees(client, current_user):
    """Erreurs du service → codes HTTP et enveloppe."""
    current_user["role"] = "STUDENT"
    cases = [
        (MalformedQrCode(), 400, "Invalid QR code format"),
        (QrCodeNotFound(), 404, "Invalid QR code"),
        (QrCodeExpired(), 400, "QR code has expired"),
        (AlreadyMarked(), 400, "Attendance already marked for this class"),
    ]
    for exc, status, error in cases:
        with patch("unisync.routers.qr_codes.qr_code_service.scan_qr_code") as mock:
            mock.side_effect = exc
            response = scan(client, "USQR1.abc")

        assert response.status_code == status
        assert response.json() == {"success": False, "data": None, "message": None, "error": error}


def test_scan_champs_requis(client, current_user):
    current_user["role"] = "STUDENT"

    assert client.post("/api/qr-codes/scan", json={"studentId": "S1"}).status_code == 400
    assert client.post("/api/qr-codes/scan", json={"qrData": "USQR1.abc"}).status_code == 400
    assert scan(client, "   ").status_code == 400


def test_scan_role_enseignant_refuse(client):
    response = scan(client, "USQR1.abc")
    assert response.status_code == 403


# ============================================================
# Scénario complet
# ============================================================

def test_scenario_cs101(client, current_user):
    """
    QR code CS101, séance 1000000, 15 min → expiresAt 1900000.
    t=1900001 → expiré ; t=1800000 S1 → 201 ; S1 à nouveau → 400 ; S2 → 201.
    """
    qr_code = generate(client).json()["data"]
    assert qr_code["expiresAt"] == 1900000

    current_user["role"] = "STUDENT"

    with patch(NOW_PATH, return_value=1900001):
        response = scan(client, qr_code["qrData"])
    assert response.status_code == 400
    assert response.json()["error"] == "QR code has expired"

    with patch(NOW_PATH, return_value=1800000):
        first = scan(client, qr_code["qrData"], latitude=48.85, longitude=2.35)
        again = scan(client, qr_code["qrData"])
        other = scan(client, qr_code["qrData"], student_id="S2")

    assert first.status_code == 201
    assert first.json()["message"] == "Attendance marked successfully"
    record = first.json()["data"]
    assert record["status"] == "PRESENT"
    assert record["studentId"] == "S1"
    assert record["markedAt"] == 1800000
    assert record["latitude"] == 48.85

    assert again.status_code == 400
    assert again.json()["error"] == "Attendance already marked for this class"

    assert other.status_code == 201
    assert other.json()["data"]["studentId"] == "S2"


def test_scan_qr_code_inconnu(client, current_user):
    from unisync.services.qr_code_service import encode_qr_data

    current_user["role"] = "STUDENT"
    response = scan(client, encode_qr_data("CS101", "L1", 1000000, "inexistant"))

    assert response.status_code == 404


# ============================================================
# GET /api/qr-codes/{id}/image
# ============================================================

def test_image_png(client):
    qr_code = generate(client).json()["data"]

    response = client.get(f"/api/qr-codes/{qr_code['id']}/image")

    assert response.status_code == 200
    assert response.headers["content-type"] == "image/png"
    assert response.content.startswith(b"\x89PNG")


def test_image_qr_code_inconnu(client):
    response = client.get("/api/qr-codes/inexistant/image")

    assert response.status_code == 404
    assert response.json()["error"] == "Invalid QR code"

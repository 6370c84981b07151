"""
Service des QR codes de présence.

Flux :
  1. L'enseignant génère un QR code pour une séance (cours + enseignant + date de séance).
     Le QR code expire `durationMinutes` après le début de la séance.
  2. L'étudiant scanne le QR code : le contenu est décodé, le QR code est relu en base,
     sa validité vérifiée, puis une présence PRESENT est créée.

Invariant : au plus une présence par (studentId, courseId, classDate).
La vérification préalable donne un message clair ; la clé unique de la collection
`attendance` (voir unisync.store.UNIQUE_KEYS) tranche les scans concurrents.

Format du contenu QR : "USQR1." + base64url(JSON [courseId, lecturerId, classDate, qrCodeId]).
"""

import base64
import binascii
import io
import json
import logging
import time
import uuid
from typing import Optional, Tuple, Union

import qrcode

from unisync.config import settings
from unisync.exceptions import (
    AlreadyMarked,
    DuplicateKeyError,
    MalformedQrCode,
    QrCodeExpired,
    QrCodeNotFound,
    ValidationError,
)
from unisync.store import DocumentStore

logger = logging.getLogger(__name__)

QR_CODES = "qrCodes"
ATTENDANCE = "attendance"

QR_DATA_PREFIX = "USQR1."


def _now_ms() -> int:
    return int(time.time() * 1000)


# ============================================================
# Encodage du contenu QR
# ============================================================

def encode_qr_data(course_id: str, lecturer_id: str, class_date: int, qr_code_id: str) -> str:
    """Encode les quatre champs du QR code dans une chaîne versionnée, sans ambiguïté de séparateur."""
    raw = json.dumps([course_id, lecturer_id, class_date, qr_code_id], separators=(",", ":"))
    encoded = base64.urlsafe_b64encode(raw.encode("utf-8")).decode("ascii").rstrip("=")
    return QR_DATA_PREFIX + encoded


def decode_qr_data(qr_data: str) -> Tuple[str, str, int, str]:
    """
    Décode le contenu d'un QR code en (courseId, lecturerId, classDate, qrCodeId).
    Lève MalformedQrCode pour toute entrée qui n'a pas été produite par encode_qr_data.
    """
    if not isinstance(qr_data, str) or not qr_data.startswith(QR_DATA_PREFIX):
        raise MalformedQrCode()

    body = qr_data[len(QR_DATA_PREFIX):]
    try:
        raw = base64.urlsafe_b64decode(body + "=" * (-len(body) % 4))
        fields = json.loads(raw.decode("utf-8"))
    except (binascii.Error, UnicodeDecodeError, ValueError):
        raise MalformedQrCode()

    if not isinstance(fields, list) or len(fields) != 4:
        raise MalformedQrCode()

    course_id, lecturer_id, class_date, qr_code_id = fields
    if not all(isinstance(f, str) for f in (course_id, lecturer_id, qr_code_id)):
        raise MalformedQrCode()
    # bool est une sous-classe d'int en Python
    if isinstance(class_date, bool) or not isinstance(class_date, int):
        raise MalformedQrCode()

    return course_id, lecturer_id, class_date, qr_code_id


def _parse_class_date(class_date: Union[int, str]) -> int:
    if isinstance(class_date, bool):
        raise ValidationError("classDate must be an epoch timestamp in milliseconds")
    try:
        return int(class_date)
    except (TypeError, ValueError):
        raise ValidationError("classDate must be an epoch timestamp in milliseconds")


# ============================================================
# Génération
# ============================================================

def generate_qr_code(
    store: DocumentStore,
    course_id: str,
    class_date: Union[int, str],
    lecturer_id: str,
    duration_minutes: Optional[int] = None,
    now: Optional[int] = None,
) -> dict:
    """
    Crée un QR code de présence pour une séance et le persiste dans `qrCodes`.

    Plusieurs QR codes peuvent coexister pour la même séance : chacun est valide
    indépendamment jusqu'à son expiration.

    Lève ValidationError si courseId est vide, classDate non numérique
    ou durationMinutes non positif.
    """
    if not course_id or not str(course_id).strip():
        raise ValidationError("courseId and classDate are required")
    if class_date is None or (isinstance(class_date, str) and not class_date.strip()):
        raise ValidationError("courseId and classDate are required")

    class_date_ms = _parse_class_date(class_date)
    duration = duration_minutes if duration_minutes is not None else settings.QR_CODE_DEFAULT_DURATION_MINUTES
    if duration <= 0:
        raise ValidationError("durationMinutes must be positive")

    qr_code_id = str(uuid.uuid4())
    qr_code = {
        "id": qr_code_id,
        "courseId": course_id,
        "lecturerId": lecturer_id,
        "classDate": class_date_ms,
        "qrData": encode_qr_data(course_id, lecturer_id, class_date_ms, qr_code_id),
        "expiresAt": class_date_ms + duration * 60 * 1000,
        "isActive": True,
        "createdAt": now if now is not None else _now_ms(),
        "isSynced": True,
    }
    store.set(QR_CODES, qr_code_id, qr_code)

    logger.info(
        "QR code %s généré (cours %s, séance %s, expire à %s)",
        qr_code_id, course_id, class_date_ms, qr_code["expiresAt"],
    )
    return qr_code


def get_qr_code(store: DocumentStore, qr_code_id: str) -> dict:
    """Retourne le QR code persisté. Lève QrCodeNotFound s'il n'existe pas."""
    qr_code = store.get(QR_CODES, qr_code_id)
    if qr_code is None:
        raise QrCodeNotFound()
    return qr_code


def render_qr_png(qr_data: str) -> bytes:
    """Génère une image PNG du QR code encodant qr_data."""
    qr = qrcode.QRCode(box_size=10, border=4)
    qr.add_data(qr_data)
    qr.make(fit=True)
    img = qr.make_image(fill_color="black", back_color="white")
    buf = io.BytesIO()
    img.save(buf, format="PNG")
    return buf.getvalue()


# ============================================================
# Scan
# ============================================================

def scan_qr_code(
    store: DocumentStore,
    qr_data: str,
    student_id: str,
    latitude: Optional[float] = None,
    longitude: Optional[float] = None,
    now: Optional[int] = None,
) -> dict:
    """
    Enregistre la présence d'un étudiant à partir du contenu d'un QR code.

    Étapes :
    1. Décoder le contenu (MalformedQrCode)
    2. Relire le QR code en base (QrCodeNotFound)
    3. Vérifier que le QR code correspond au contenu scanné (MalformedQrCode)
    4. Vérifier qu'il est actif et non expiré (QrCodeExpired)
    5. Vérifier qu'aucune présence n'existe pour (étudiant, cours, séance) (AlreadyMarked)
    6. Créer la présence PRESENT: une violation de clé unique est aussi un AlreadyMarked
    """
    now = now if now is not None else _now_ms()

    course_id, lecturer_id, class_date, qr_code_id = decode_qr_data(qr_data)

    qr_code = store.get(QR_CODES, qr_code_id)
    if qr_code is None:
        logger.warning("Scan refusé : QR code %s inconnu (étudiant %s)", qr_code_id, student_id)
        raise QrCodeNotFound()

    if (
        qr_code.get("courseId") != course_id
        or qr_code.get("lecturerId") != lecturer_id
        or qr_code.get("classDate") != class_date
    ):
        logger.warning("Scan refusé : contenu incohérent avec le QR code %s", qr_code_id)
        raise MalformedQrCode("QR code does not match its record")

    if not qr_code.get("isActive", False) or qr_code["expiresAt"] < now:
        logger.warning("Scan refusé : QR code %s expiré (étudiant %s)", qr_code_id, student_id)
        raise QrCodeExpired()

    existing = store.query(
        ATTENDANCE,
        {"studentId": student_id, "courseId": course_id, "classDate": class_date},
        limit=1,
    )
    if existing:
        raise AlreadyMarked()

    attendance_id = str(uuid.uuid4())
    attendance = {
        "id": attendance_id,
        "studentId": student_id,
        "lecturerId": lecturer_id,
        "courseId": course_id,
        "classDate": class_date,
        "status": "PRESENT",
        "markedAt": now,
        "latitude": latitude,
        "longitude": longitude,
        "isSynced": True,
    }
    try:
        store.set(ATTENDANCE, attendance_id, attendance)
    except DuplicateKeyError:
        # Scan concurrent du même étudiant pour la même séance
        raise AlreadyMarked()

    logger.info(
        "Présence enregistrée pour étudiant %s, cours %s, séance %s (QR %s)",
        student_id, course_id, class_date, qr_code_id,
    )
    return attendance

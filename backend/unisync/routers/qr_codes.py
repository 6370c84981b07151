"""
Router pour les QR codes de présence.
Génération par les enseignants, scan par les étudiants depuis l'app mobile.
"""

from fastapi import APIRouter, Depends
from fastapi.responses import Response

from unisync.schemas.common import ApiResponse, success_response
from unisync.schemas.qr_code import AttendanceResponse, QrCodeGenerate, QrCodeResponse, QrCodeScan
from unisync.security import ROLES_LECTURER, ROLES_STUDENT, require_role
from unisync.services import qr_code_service
from unisync.store import DocumentStore, get_store

router = APIRouter(prefix="/api/qr-codes", tags=["QR codes de présence"])


@router.post(
    "/generate",
    response_model=ApiResponse[QrCodeResponse],
    status_code=201,
    summary="Générer un QR code de présence",
)
def generate_qr_code(
    data: QrCodeGenerate,
    store: DocumentStore = Depends(get_store),
    user: dict = Depends(require_role(*ROLES_LECTURER)),
):
    """
    Crée un QR code pour une séance de cours.

    Le QR code expire `durationMinutes` (15 par défaut) après `classDate`.
    Sans `lecturerId`, l'enseignant connecté est utilisé.

    Retourne 400 si courseId ou classDate sont absents ou invalides.
    """
    qr_code = qr_code_service.generate_qr_code(
        store,
        course_id=data.course_id,
        class_date=data.class_date,
        lecturer_id=data.lecturer_id or user["id"],
        duration_minutes=data.duration_minutes,
    )
    return success_response(qr_code, "QR code generated successfully")


@router.post(
    "/scan",
    response_model=ApiResponse[AttendanceResponse],
    status_code=201,
    summary="Scanner un QR code de présence",
)
def scan_qr_code(
    data: QrCodeScan,
    store: DocumentStore = Depends(get_store),
    user: dict = Depends(require_role(*ROLES_STUDENT)),
):
    """
    Enregistre la présence de l'étudiant pour la séance encodée dans le QR code.

    Retourne 400 si le QR code est mal formé, expiré ou si la présence est déjà
    enregistrée, 404 si le QR code est inconnu.
    """
    attendance = qr_code_service.scan_qr_code(
        store,
        qr_data=data.qr_data,
        student_id=data.student_id,
        latitude=data.latitude,
        longitude=data.longitude,
    )
    return success_response(attendance, "Attendance marked successfully")


@router.get(
    "/{qr_code_id}/image",
    summary="Image PNG d'un QR code",
    response_class=Response,
)
def get_qr_code_image(
    qr_code_id: str,
    store: DocumentStore = Depends(get_store),
    user: dict = Depends(require_role(*ROLES_LECTURER)),
):
    """Retourne le QR code sous forme d'image PNG, à afficher en début de séance."""
    qr_code = qr_code_service.get_qr_code(store, qr_code_id)
    png = qr_code_service.render_qr_png(qr_code["qrData"])
    return Response(content=png, media_type="image/png")

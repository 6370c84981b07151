"""
Schémas Pydantic pour les QR codes de présence.
Endpoints : POST /api/qr-codes/generate, POST /api/qr-codes/scan
"""

from typing import Optional, Union

from pydantic import field_validator

from unisync.schemas.common import CamelModel


class QrCodeGenerate(CamelModel):
    """Demande de génération d'un QR code par un enseignant."""

    course_id: str
    class_date: Union[int, str]           # Epoch ms de la séance (chaîne acceptée)
    lecturer_id: Optional[str] = None     # Par défaut : l'utilisateur connecté
    duration_minutes: Optional[int] = None

    @field_validator("course_id")
    @classmethod
    def course_id_not_empty(cls, v: str) -> str:
        if not v.strip():
            raise ValueError("courseId cannot be empty")
        return v.strip()


class QrCodeResponse(CamelModel):
    """QR code persisté dans la collection qrCodes."""

    id: str
    course_id: str
    lecturer_id: str
    class_date: int
    qr_data: str
    expires_at: int
    is_active: bool
    created_at: int
    is_synced: bool = True


class QrCodeScan(CamelModel):
    """Scan d'un QR code par un étudiant."""

    qr_data: str
    student_id: str
    latitude: Optional[float] = None
    longitude: Optional[float] = None

    @field_validator("qr_data", "student_id")
    @classmethod
    def not_empty(cls, v: str) -> str:
        if not v.strip():
            raise ValueError("qrData and studentId are required")
        return v.strip()


class AttendanceResponse(CamelModel):
    """Présence enregistrée dans la collection attendance."""

    id: str
    student_id: str
    lecturer_id: str
    course_id: str
    class_date: int
    status: str                          # PRESENT, ABSENT, LATE
    marked_at: int
    latitude: Optional[float] = None
    longitude: Optional[float] = None
    is_synced: bool = True

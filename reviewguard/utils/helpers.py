# =============================================================================
# reviewguard/utils/helpers.py
"""
GENERAL HELPER FUNCTIONS
Small formatting utilities shared by services and blueprints
"""
import os
from datetime import datetime
from typing import Optional

from werkzeug.utils import secure_filename


def mask_phone(phone: Optional[str]) -> str:
    """Mask all but the last four digits for log output"""
    if not phone:
        return 'unknown'
    if len(phone) <= 4:
        return '***'
    return f"***{phone[-4:]}"


def first_name(full_name: Optional[str]) -> str:
    if not full_name:
        return ''
    return full_name.strip().split(' ')[0]


def isoformat(value: Optional[datetime]) -> Optional[str]:
    return value.isoformat() if value else None


def usage_percentage(used: int, quota: int) -> float:
    if not quota:
        return 100.0
    return round((used / quota) * 100, 1)


def usage_warning_level(percentage: float) -> str:
    """none / medium / high / critical at 70, 80 and 90 percent"""
    if percentage >= 90:
        return 'critical'
    if percentage >= 80:
        return 'high'
    if percentage >= 70:
        return 'medium'
    return 'none'


def allowed_upload(filename: str, allowed_extensions) -> bool:
    return '.' in filename and filename.rsplit('.', 1)[1].lower() in allowed_extensions


def save_upload(file_storage, upload_folder: str, prefix: str) -> str:
    """Persist an uploaded photo and return the stored file name"""
    os.makedirs(upload_folder, exist_ok=True)
    timestamp = datetime.utcnow().strftime('%Y%m%d%H%M%S%f')
    filename = secure_filename(f"{prefix}-{timestamp}-{file_storage.filename}")
    file_storage.save(os.path.join(upload_folder, filename))
    return filename


def remove_upload(upload_folder: str, filename: str) -> None:
    """Delete a stored photo; missing files are ignored"""
    path = os.path.join(upload_folder, filename)
    if os.path.exists(path):
        os.remove(path)

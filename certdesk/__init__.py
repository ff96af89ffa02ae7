"""
Основной модуль бизнес-логики сертификатов о стажировке.
"""

from .service import CertificateService, get_certificate_service
from .models import Actor, Certificate, CertificateRequest, BulkCreateItem, CreateResult
from .generator import AccessCodeGenerator
from .database import get_db_manager, get_certificate_repo

__version__ = "1.0.0"

__all__ = [
    'CertificateService',
    'get_certificate_service',
    'Actor',
    'Certificate',
    'CertificateRequest',
    'BulkCreateItem',
    'CreateResult',
    'AccessCodeGenerator',
    'get_db_manager',
    'get_certificate_repo'
]

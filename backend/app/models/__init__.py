from app.db.base import Base
from app.models.branch import Branch
from app.models.ingest_run import IngestRun
from app.models.lao_condition import LaoCondition
from app.models.lao_inspection import LaoInspection
from app.models.lao_record import LaoRecord
from app.models.license_type import LicenseType

__all__ = [
    "Base",
    "Branch",
    "IngestRun",
    "LaoCondition",
    "LaoInspection",
    "LaoRecord",
    "LicenseType",
]

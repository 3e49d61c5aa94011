"""Public DTO exports for FastAPI response models."""

from .university import (
    AdmissionInfoDTO,
    AdmissionScheduleDTO,
    BatchMetaDTO,
    DepartmentDTO,
    MajorDTO,
    SearchMetaDTO,
    SubjectBatchResponseDTO,
    SubjectDTO,
    SubjectResponseDTO,
    TestTypeDTO,
    UniversityDTO,
    UniversitySearchResponseDTO,
)

__all__ = [
    "AdmissionInfoDTO",
    "AdmissionScheduleDTO",
    "BatchMetaDTO",
    "DepartmentDTO",
    "MajorDTO",
    "SearchMetaDTO",
    "SubjectBatchResponseDTO",
    "SubjectDTO",
    "SubjectResponseDTO",
    "TestTypeDTO",
    "UniversityDTO",
    "UniversitySearchResponseDTO",
]

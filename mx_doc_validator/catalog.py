"""
Reference data: supported document types and the fields they carry.

Document-type strings arrive from the extraction stage in whatever form the
model chose ("Tarjeta de Circulación", "licencia", "PÓLIZA"), so class checks
go through `document_class_key`, which lower-cases and strips accents.
"""

from __future__ import annotations

import unicodedata
from dataclasses import dataclass


@dataclass(frozen=True)
class DocumentType:
    id: str
    name: str
    description: str


SUPPORTED_DOCUMENT_TYPES: tuple[DocumentType, ...] = (
    DocumentType("ine", "INE/IFE", "Credencial de elector mexicana"),
    DocumentType("licencia", "Licencia de Conducir", "Licencia de conducir mexicana"),
    DocumentType("pasaporte", "Pasaporte", "Pasaporte mexicano"),
    DocumentType("circulacion", "Tarjeta de Circulación", "Tarjeta de circulación vehicular"),
    DocumentType("rfc", "Constancia de Situación Fiscal", "Constancia del SAT"),
    DocumentType("poliza", "Póliza de Seguro", "Póliza de seguro vehicular"),
    DocumentType("banco", "Carátula Bancaria", "Estado de cuenta o carátula bancaria"),
    DocumentType("domicilio", "Comprobante de Domicilio", "CFE, agua, teléfono, etc."),
    DocumentType("acta", "Acta Constitutiva", "Acta constitutiva de empresa"),
    DocumentType("poder", "Poder Notarial", "Poder notarial"),
    DocumentType("vehiculo", "Fotografía de Vehículo", "Fotos del vehículo"),
    DocumentType("verificacion", "Verificación Vehicular", "Constancia de verificación"),
    DocumentType("antecedentes", "Carta de Antecedentes", "Carta de no antecedentes penales"),
    DocumentType("auto", "Detección Automática", "El sistema detecta el tipo"),
)

EXTRACTABLE_FIELDS: tuple[str, ...] = (
    "nombre", "curp", "rfc", "claveElector", "numeroLicencia", "tipoLicencia",
    "vigencia", "vigenciaFin", "direccion", "codigoPostal", "placas", "vin",
    "modelo", "marca", "anio", "aseguradora", "poliza", "banco", "clabe",
    "numeroCuenta", "razonSocial", "telefono", "email", "folio", "nss",
    "sexo", "fechaNacimiento",
)

# Substrings of a normalized document type that mark its class
DRIVING_LICENSE_KEYWORDS: tuple[str, ...] = ("licencia", "license")
VEHICLE_DOCUMENT_KEYWORDS: tuple[str, ...] = ("circulacion", "poliza", "vehiculo")


def document_class_key(document_type: str | None) -> str:
    """Lower-case `document_type` and strip accents: "Póliza" → "poliza"."""
    if not document_type:
        return ""
    decomposed = unicodedata.normalize("NFKD", document_type.lower())
    return "".join(ch for ch in decomposed if not unicodedata.combining(ch))


def is_driving_license(document_type: str | None) -> bool:
    key = document_class_key(document_type)
    return any(word in key for word in DRIVING_LICENSE_KEYWORDS)


def is_vehicle_document(document_type: str | None) -> bool:
    key = document_class_key(document_type)
    return any(word in key for word in VEHICLE_DOCUMENT_KEYWORDS)

"""IDE project template export services."""

from .service import ExportRequest, ExportResult, VsTemplateExporter

__all__ = ["ExportRequest", "ExportResult", "VsTemplateExporter"]

"""CSV statement import."""

from src.importer.csv_pipeline import CATEGORY_PALETTE, CSVImportPipeline, import_key

__all__ = ["CATEGORY_PALETTE", "CSVImportPipeline", "import_key"]

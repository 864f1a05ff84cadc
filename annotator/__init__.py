"""
Annotator - canvas annotation overlay for PDF documents.

This package turns the JSON object model of a browser drawing canvas
(freehand paths, text boxes, highlight rectangles) into drawing operations
on top of an existing PDF:
- Validation of the annotation payload
- Page-by-page template stamping with PyMuPDF
- Rendering of paths, text and translucent highlights
- A small FastAPI boundary for uploading, rendering and storing results
"""

__version__ = "1.0.0"

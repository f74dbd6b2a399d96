"""Core logic for MapForge, a mapping editor for interface fields.

The Gradio UI lives in `app.py`. This package contains pure functions that:
- extract field paths from JSON, XML and XSD inputs
- validate and key versioned mapping projects
- reconcile catalogs and address rubrics with the mapping rows
- persist projects and move them through JSON and Excel files
"""

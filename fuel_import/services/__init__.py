"""Import run services: orchestration, progress display and summary rendering."""

from __future__ import annotations

from unittest.mock import patch

from fuel_import.services.progress import ProgressTracker


def test_progress_disabled_without_tty():
    with patch("fuel_import.services.progress.is_tty_enabled", return_value=False):
        with ProgressTracker(3) as p:
            p.advance()
            p.advance(success=False)
            assert p.pbar is None
    assert p.done == 2
    assert p.failed == 1


def test_progress_bar_updates_on_tty():
    with patch("fuel_import.services.progress.is_tty_enabled", return_value=True), patch(
        "fuel_import.services.progress.tqdm"
    ) as mock_tqdm:
        p = ProgressTracker(2, description="Importing sessions")
        p.advance(success=False)
        bar = mock_tqdm.return_value
        bar.update.assert_called_once_with(1)
        bar.set_postfix.assert_called_once_with(failed=1)
        p.close()
        bar.close.assert_called_once()
        assert p.pbar is None

"""DevTools channel, event recording and scan orchestration."""

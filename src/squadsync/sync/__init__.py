"""Local-first sync: document keys, remote store client, change feed, orchestrator."""

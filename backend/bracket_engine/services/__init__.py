"""
Services Layer

Bracket, result and settlement logic shared by the routers:
- Take a Session plus domain inputs (ids, Actor, scores)
- Raise bracket_engine.errors exceptions, never HTTPException
- Own their unit of work: commit on success, roll back on any failure
  (LedgerService only flushes; its caller commits)
"""

"""
Link Audit Services

Flow of one session, leaf-first:

1. ingestor.py     - uploaded CSV bytes -> ordered, normalized URL list
2. page_auditor.py - one URL -> one ResultRecord (fetch, title, '#' anchor scan)
3. progress.py     - ordered text events on the session WebSocket
4. aggregator.py   - ResultRecords kept in input order
5. exporter.py     - CSV report written atomically under a per-session name
6. session.py      - state machine tying the above together
"""

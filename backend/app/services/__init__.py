"""
Services Layer

Practice scheduling logic kept apart from the HTTP routes:
- preference_matrix: 6x12 matrix / grid shapes and parsing
- band_preference_aggregator: member priorities -> per-band scores
- practice_slot_assignment: greedy placement into the location grid
- practice_session_store: practice_session reads and result writes
- practice_result: the pipeline tying the above together
"""

class MockCheckpointStore:
    def __init__(self, ledger=None, seq=None):
        self.records = []
        if ledger is not None:
            self.records.append(dict(ledger))
        self.seq = seq
    def get_latest(self, feed_id):
        if not self.records:
            return None, {}
        return self.seq or len(self.records), dict(self.records[-1])
    def append(self, feed_id, ledger):
        self.records.append(dict(ledger))
        return len(self.records)


class MockIncidentLog:
    def __init__(self):
        self.texts = []
    def append(self, text):
        self.texts.append(text)
    def recent(self, limit=20):
        return [{"created_at": "", "incident": t} for t in reversed(self.texts[-limit:])]

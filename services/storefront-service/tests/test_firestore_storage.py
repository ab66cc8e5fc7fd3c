from unittest.mock import MagicMock

from storage.firestore import MAX_BATCH_WRITES, FirestoreStorage


def test_clear_cart_splits_deletes_into_batches():
    client = MagicMock()
    snapshots = [MagicMock() for _ in range(2 * MAX_BATCH_WRITES + 1)]
    client.collection.return_value.where.return_value.stream.return_value = snapshots
    batches = []

    def new_batch():
        batches.append(MagicMock())
        return batches[-1]

    client.batch.side_effect = new_batch

    removed = FirestoreStorage(client).clear_cart("session-a")

    assert removed == len(snapshots)
    assert [batch.delete.call_count for batch in batches] == [MAX_BATCH_WRITES, MAX_BATCH_WRITES, 1]
    assert all(batch.commit.call_count == 1 for batch in batches)


def test_clear_empty_cart_commits_nothing():
    client = MagicMock()
    client.collection.return_value.where.return_value.stream.return_value = []

    assert FirestoreStorage(client).clear_cart("session-a") == 0
    client.batch.assert_not_called()

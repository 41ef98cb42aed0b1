import threading

from harvester.config import RetryConfig
from harvester.models import SubmissionItem
from harvester.resilience import RetryHandler
from harvester.submission import SubmissionQueue

from conftest import FakeJobClient, wait_until


def item(episode, anime_id=1):
    return SubmissionItem(anime_id=anime_id, episode_number=episode, sources=[])


def no_wait_retry(max_retries=2):
    return RetryHandler(RetryConfig(max_retries=max_retries, base_delay=0), sleep=lambda _: None)


def test_concurrent_enqueue_forwards_everything_in_order_one_at_a_time():
    client = FakeJobClient(submit_delay=0.002)
    submissions = SubmissionQueue(client, no_wait_retry())

    def produce(anime_id):
        for episode in range(1, 11):
            submissions.enqueue(item(episode, anime_id))
            submissions.kick()

    producers = [threading.Thread(target=produce, args=(anime_id,)) for anime_id in range(1, 5)]
    for thread in producers:
        thread.start()
    for thread in producers:
        thread.join()

    assert wait_until(lambda: len(client.submitted) == 40 and not submissions.draining)
    assert client.max_in_flight == 1
    assert submissions.forwarded == 40
    assert len(submissions) == 0
    # Per producer, episodes arrive in enqueue order
    for anime_id in range(1, 5):
        episodes = [ep for aid, ep, _ in client.submitted if aid == anime_id]
        assert episodes == list(range(1, 11))


def test_drain_preserves_fifo_order():
    client = FakeJobClient()
    submissions = SubmissionQueue(client, no_wait_retry())
    for anime_id, episode in [(3, 1), (1, 7), (2, 2), (1, 8)]:
        submissions.enqueue(item(episode, anime_id))

    assert submissions.drain() == 4
    assert [(aid, ep) for aid, ep, _ in client.submitted] == [(3, 1), (1, 7), (2, 2), (1, 8)]


def test_drain_is_noop_while_another_drain_runs():
    client = FakeJobClient()
    submissions = SubmissionQueue(client, no_wait_retry())
    submissions.enqueue(item(1))
    submissions._drain_lock.acquire()
    try:
        assert submissions.drain() == 0
        assert submissions.kick() is None
    finally:
        submissions._drain_lock.release()
    assert len(submissions) == 1


def test_failed_submission_is_recorded_and_queue_moves_on():
    client = FakeJobClient(fail_submit=True)
    retry = no_wait_retry(max_retries=3)
    submissions = SubmissionQueue(client, retry)
    submissions.enqueue(item(1))
    submissions.enqueue(item(2))

    assert submissions.drain() == 2
    assert [i.episode_number for i in submissions.failed] == [1, 2]
    assert submissions.forwarded == 0
    failures = retry.get_failed()
    assert [f['key'] for f in failures] == ["1:1", "1:2"]
    assert "submit failed" in failures[0]['reason']
    assert failures[0]['attempts'] == 3


def test_kick_drains_in_background():
    client = FakeJobClient()
    submissions = SubmissionQueue(client, no_wait_retry())
    submissions.enqueue(item(5))
    thread = submissions.kick()
    assert thread is not None
    thread.join(5)
    assert [ep for _, ep, _ in client.submitted] == [5]

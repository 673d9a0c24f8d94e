from __future__ import annotations

import json

import httpx
import pytest
from fastapi.testclient import TestClient

from conftest import SEARCH_URL, RecordingTransport, search_page
from leadpoacher.dependencies import get_job_manager, get_job_processor, get_lead_store, get_progress_broker
from leadpoacher.jobs.job_manager import JobManager
from leadpoacher.jobs.lead_store import LeadStore
from leadpoacher.jobs.processor import JobProcessor
from leadpoacher.main import app
from leadpoacher.services.progress import ProgressBroker

PAGE_URL = 'https://rival-watch.de/acme'
PAGE_HTML = (
    '<html><head><title>Rival Watch | news</title></head><body>'
    '<p>We moved off Acme.</p><p>Contact: Jane Doe, jane.doe@rival-watch.de</p>'
    '</body></html>'
)


class Harness:
    def __init__(self, settings, transport: httpx.BaseTransport) -> None:
        self.manager = JobManager()
        self.store = LeadStore()
        self.broker = ProgressBroker()
        self.processor = JobProcessor(
            settings,
            self.manager,
            self.store,
            self.broker,
            client_factory=lambda: httpx.AsyncClient(transport=transport),
        )


@pytest.fixture
def transport() -> RecordingTransport:
    return RecordingTransport(
        {
            SEARCH_URL: (200, search_page(PAGE_URL)),
            PAGE_URL: (200, PAGE_HTML),
        }
    )


@pytest.fixture
def harness(settings, transport):
    return Harness(settings, transport)


@pytest.fixture
def client(harness):
    app.dependency_overrides[get_job_manager] = lambda: harness.manager
    app.dependency_overrides[get_lead_store] = lambda: harness.store
    app.dependency_overrides[get_progress_broker] = lambda: harness.broker
    app.dependency_overrides[get_job_processor] = lambda: harness.processor
    yield TestClient(app)
    app.dependency_overrides.clear()


def create_job(client: TestClient, competitor: str = 'Acme') -> dict:
    response = client.post('/jobs', json={'competitor': competitor})
    assert response.status_code == 200
    return response.json()


class TestJobsEndpoints:
    def test_health(self, client) -> None:
        assert client.get('/health').json() == {'status': 'ok'}

    def test_create_and_fetch_job(self, client) -> None:
        job = create_job(client)

        assert job['state'] == 'queued'
        response = client.get(f'/jobs/{job["id"]}')
        assert response.status_code == 200
        assert response.json()['competitor'] == 'Acme'

    def test_create_job_rejects_short_name(self, client) -> None:
        response = client.post('/jobs', json={'competitor': 'A'})

        assert response.status_code == 400

    def test_unknown_job_is_404(self, client) -> None:
        response = client.get('/jobs/does-not-exist')

        assert response.status_code == 404
        assert response.json()['detail'] == 'Job not found'

    def test_upload_creates_one_job_per_distinct_name(self, client) -> None:
        content = b'competitor\nAcme\nGlobex\nAcme\n'

        response = client.post('/jobs/upload', files={'file': ('rivals.csv', content, 'text/csv')})

        assert response.status_code == 200
        body = response.json()
        assert body['total'] == 2
        assert [job['competitor'] for job in body['jobs']] == ['Acme', 'Globex']
        assert body['rejected'] == [{'row': 4, 'value': 'Acme', 'reason': 'duplicate of row 2'}]

    def test_upload_rejects_other_file_types(self, client) -> None:
        response = client.post('/jobs/upload', files={'file': ('rivals.txt', b'Acme', 'text/plain')})

        assert response.status_code == 400


class TestScrapeEndpoint:
    def test_missing_job_id_is_400(self, client) -> None:
        response = client.post('/scrape', json={'competitor': 'Acme'})

        assert response.status_code == 400
        assert response.json()['detail'] == 'Invalid or missing job id'

    def test_short_competitor_is_400(self, client) -> None:
        response = client.post('/scrape', json={'job_id': 'x', 'competitor': 'A'})

        assert response.status_code == 400

    def test_unknown_job_is_404(self, client) -> None:
        response = client.post('/scrape', json={'job_id': 'missing', 'competitor': 'Acme'})

        assert response.status_code == 404
        assert response.json()['detail'] == 'Scrape job not found'

    def test_successful_run_stores_leads_and_finishes_job(self, client, harness) -> None:
        job = create_job(client)

        response = client.post('/scrape', json={'job_id': job['id'], 'competitor': 'Acme'})

        assert response.status_code == 200
        body = response.json()
        assert body['success'] is True
        assert body['results']['total_searched'] == 1
        assert body['results']['total_leads_found'] == 1
        assert body['results']['saved_companies'] == 1
        assert body['results']['saved_leads'] == 1
        assert body['results']['errors'] == []
        assert client.get(f'/jobs/{job["id"]}').json()['state'] == 'done'

    def test_second_run_of_same_job_is_409(self, client) -> None:
        job = create_job(client)
        client.post('/scrape', json={'job_id': job['id'], 'competitor': 'Acme'})

        response = client.post('/scrape', json={'job_id': job['id'], 'competitor': 'Acme'})

        assert response.status_code == 409

    def test_competitor_mismatch_is_400(self, client) -> None:
        job = create_job(client)

        response = client.post('/scrape', json={'job_id': job['id'], 'competitor': 'Globex'})

        assert response.status_code == 400
        assert response.json()['detail'] == 'Competitor name does not match job'

    def test_crash_marks_job_error_and_returns_500(self, client, transport) -> None:
        transport.routes[SEARCH_URL] = RuntimeError('socket exploded')
        job = create_job(client)

        response = client.post('/scrape', json={'job_id': job['id'], 'competitor': 'Acme'})

        assert response.status_code == 500
        assert response.json()['detail'] == 'Internal server error'
        stored = client.get(f'/jobs/{job["id"]}').json()
        assert stored['state'] == 'error'
        assert 'socket exploded' in stored['error_message']


class TestLeadsEndpoints:
    def run_job(self, client: TestClient) -> None:
        job = create_job(client)
        assert client.post('/scrape', json={'job_id': job['id'], 'competitor': 'Acme'}).status_code == 200

    def test_leads_and_companies_are_listed(self, client) -> None:
        self.run_job(client)

        leads = client.get('/leads').json()
        companies = client.get('/companies').json()

        assert [row['lead']['contact_email'] for row in leads] == ['jane.doe@rival-watch.de']
        assert leads[0]['company']['name'] == 'Rival Watch'
        assert [company['domain'] for company in companies] == ['rival-watch.de']

    def test_patch_updates_status_and_note(self, client) -> None:
        self.run_job(client)
        lead_id = client.get('/leads').json()[0]['lead']['id']

        response = client.patch(f'/leads/{lead_id}', json={'status': 'qualified', 'note': 'good fit'})

        assert response.status_code == 200
        assert response.json()['status'] == 'qualified'
        assert response.json()['note'] == 'good fit'

    def test_patch_unknown_lead_is_404(self, client) -> None:
        response = client.patch('/leads/missing', json={'status': 'rejected'})

        assert response.status_code == 404

    def test_patch_rejects_unknown_status(self, client) -> None:
        self.run_job(client)
        lead_id = client.get('/leads').json()[0]['lead']['id']

        response = client.patch(f'/leads/{lead_id}', json={'status': 'archived'})

        assert response.status_code == 422

    def test_export_returns_csv_attachment(self, client) -> None:
        self.run_job(client)

        response = client.get('/leads/export')

        assert response.status_code == 200
        assert response.headers['content-type'].startswith('text/csv')
        assert 'filename=leads.csv' in response.headers['content-disposition']
        lines = response.text.strip().splitlines()
        assert lines[0].startswith('company,domain,contact_name,contact_email')
        assert 'jane.doe@rival-watch.de' in lines[1]


def test_progress_stream_replays_run_and_ends_on_completion(client) -> None:
    job = create_job(client)
    client.post('/scrape', json={'job_id': job['id'], 'competitor': 'Acme'})

    with client.stream('GET', f'/progress/{job["id"]}') as response:
        assert response.headers['content-type'].startswith('text/event-stream')
        frames = [line[len('data: '):] for line in response.iter_lines() if line.startswith('data: ')]

    events = [json.loads(frame) for frame in frames]
    assert events[0]['operation'] == 'connection_established'
    assert events[1]['operation'] == 'scrape_start'
    assert events[-1]['type'] == 'complete'
    assert events[-1]['operation'] == 'job_complete'
    assert {event['job_id'] for event in events} == {job['id']}


def test_progress_stream_after_crash_ends_on_generic_job_failure(client, transport) -> None:
    transport.routes[SEARCH_URL] = RuntimeError('socket exploded')
    job = create_job(client)
    client.post('/scrape', json={'job_id': job['id'], 'competitor': 'Acme'})

    with client.stream('GET', f'/progress/{job["id"]}') as response:
        frames = [line[len('data: '):] for line in response.iter_lines() if line.startswith('data: ')]

    events = [json.loads(frame) for frame in frames]
    assert [event['operation'] for event in events[-2:]] == ['scrape_failed', 'job_failed']
    assert events[-1]['errors'] == ['Internal server error']
    assert all('socket exploded' not in frame for frame in frames)

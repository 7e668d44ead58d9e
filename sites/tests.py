"""
Tests for sites app - generation, owner-scoped storage, publishing and resolution.
"""
import json

import pytest
from django.contrib.auth import get_user_model
from rest_framework.test import APIClient
from rest_framework_simplejwt.tokens import RefreshToken

COFFEE_CONTENT = {
    'title': 'Bean There',
    'description': 'Artisanal coffee in the heart of town.',
    'slug': 'bean-there',
    'html': '<main><h1 class="text-4xl">Bean There</h1><p>Fresh roasts daily.</p></main>',
    'css': '.hero { background: #6f4e37; }',
    'tailwind': True,
    'assets': [{'path': '/assets/hero.jpg', 'alt': 'Cafe interior'}],
    'scripts': 'console.log("hello");',
    'seo': {'titleTag': 'Bean There Coffee', 'metaDescription': 'Best coffee in town'},
    'accessibilityNotes': 'High contrast headings.',
    'mobileFirst': True,
    'notes': 'Generated for demo.',
}


@pytest.fixture
def api_client():
    return APIClient()


@pytest.fixture
def user_model():
    return get_user_model()


@pytest.fixture
def create_user(user_model):
    def _create_user(email="test@example.com", password="testpass123", role='standard'):
        return user_model.objects.create_user(
            email=email,
            username=email,
            password=password,
            role=role,
        )
    return _create_user


@pytest.fixture
def authenticated_client(api_client, create_user):
    user = create_user()
    refresh = RefreshToken.for_user(user)
    api_client.credentials(HTTP_AUTHORIZATION=f'Bearer {str(refresh.access_token)}')
    return api_client, user


@pytest.fixture
def fake_backend(monkeypatch):
    calls = []

    def _generate_structured(prompt, schema, system_instruction):
        calls.append(prompt)
        return json.dumps(COFFEE_CONTENT)

    monkeypatch.setattr('ai.providers.generate_structured', _generate_structured)
    return calls


@pytest.fixture
def site_content():
    from sites.content import SiteContent
    return SiteContent.from_dict(COFFEE_CONTENT)


@pytest.fixture
def create_site(create_user, site_content):
    def _create_site(user=None, prompt="Coffee shop landing page", content=None):
        from sites.store import SiteStore
        if user is None:
            user = create_user()
        store = SiteStore(user.pk)
        return store.create(user.pk, prompt, content or site_content)
    return _create_site


@pytest.mark.django_db
class TestSiteStore:

    def test_create_starts_unpublished(self, create_user, site_content):
        from sites.store import SiteStore
        user = create_user()
        site = SiteStore(user.pk).create(user.pk, "Coffee shop landing page", site_content)

        assert site.id is not None
        assert site.owner_id == user.pk
        assert site.is_published is False
        assert site.published_at is None
        assert site.prompt == "Coffee shop landing page"
        assert site.title == 'Bean There'
        assert site.site_content == site_content

    def test_list_is_most_recent_first(self, create_user, create_site):
        from sites.store import SiteStore
        user = create_user()
        first = create_site(user=user, prompt="first")
        second = create_site(user=user, prompt="second")
        third = create_site(user=user, prompt="third")

        sites = SiteStore(user.pk).list(user.pk)
        assert [s.id for s in sites] == [third.id, second.id, first.id]
        assert first.created_at < second.created_at < third.created_at

    def test_list_never_returns_other_owner_records(self, create_user, create_site):
        from sites.store import SiteStore
        owner = create_user()
        other = create_user(email='other@example.com')
        create_site(user=owner)
        create_site(user=other)

        sites = SiteStore(owner.pk).list(owner.pk)
        assert len(sites) == 1
        assert all(s.owner_id == owner.pk for s in sites)

    def test_cross_owner_access_is_rejected_by_store(self, create_user, create_site, site_content):
        from sites.exceptions import StorePermissionError
        from sites.store import SiteStore
        owner = create_user()
        other = create_user(email='other@example.com')
        site = create_site(user=owner)
        store = SiteStore(other.pk)

        with pytest.raises(StorePermissionError):
            store.list(owner.pk)
        with pytest.raises(StorePermissionError):
            store.publish(owner.pk, site.id)
        with pytest.raises(StorePermissionError):
            store.create(owner.pk, "hijack", site_content)
        with pytest.raises(PermissionError):
            store.get(owner.pk, site.id)

    def test_publish_is_idempotent(self, create_user, create_site):
        from sites.store import SiteStore
        user = create_user()
        site = create_site(user=user)
        store = SiteStore(user.pk)

        first = store.publish(user.pk, site.id)
        published_at = first.published_at
        second = store.publish(user.pk, site.id)

        assert first.is_published is True
        assert second.is_published is True
        assert second.published_at == published_at

    def test_publish_missing_site_raises_not_found(self, create_user):
        from sites.exceptions import NotFoundError
        from sites.store import SiteStore
        user = create_user()
        store = SiteStore(user.pk)

        with pytest.raises(NotFoundError):
            store.publish(user.pk, '00000000-0000-0000-0000-000000000000')
        with pytest.raises(NotFoundError):
            store.publish(user.pk, 'not-a-uuid')

    def test_publish_other_owner_site_under_own_namespace_is_not_found(self, create_user, create_site):
        from sites.exceptions import NotFoundError
        from sites.models import Site
        from sites.store import SiteStore
        owner = create_user()
        other = create_user(email='other@example.com')
        site = create_site(user=owner)

        with pytest.raises(NotFoundError):
            SiteStore(other.pk).publish(other.pk, site.id)
        assert Site.objects.get(pk=site.id).is_published is False

    def test_unpublish_recloses_gate(self, create_user, create_site):
        from sites.store import SiteStore
        user = create_user()
        site = create_site(user=user)
        store = SiteStore(user.pk)

        store.publish(user.pk, site.id)
        site = store.unpublish(user.pk, site.id)
        assert site.is_published is False
        assert site.published_at is None

    def test_replace_content_keeps_identity_and_prompt(self, create_user, create_site):
        from sites.content import SiteContent
        from sites.store import SiteStore
        user = create_user()
        site = create_site(user=user)
        new_content = SiteContent.from_dict({**COFFEE_CONTENT, 'title': 'Bean Here', 'html': '<p>New</p>'})

        updated = SiteStore(user.pk).replace_content(user.pk, site.id, new_content)
        assert updated.id == site.id
        assert updated.prompt == site.prompt
        assert updated.title == 'Bean Here'
        assert updated.site_content == new_content

    def test_store_requires_principal(self):
        from sites.exceptions import StorePermissionError
        from sites.store import SiteStore
        with pytest.raises(StorePermissionError):
            SiteStore(None)


@pytest.mark.django_db
class TestResolver:

    def test_resolve_before_publish_fails(self, create_user, create_site):
        from sites.addressing import resolve
        from sites.exceptions import NotPublishedError
        user = create_user()
        site = create_site(user=user)

        with pytest.raises(NotPublishedError):
            resolve(user.pk, site.id)

    def test_resolve_after_publish_returns_stored_content(self, create_user, create_site, site_content):
        from sites.addressing import resolve
        from sites.store import SiteStore
        user = create_user()
        site = create_site(user=user)
        SiteStore(user.pk).publish(user.pk, site.id)

        assert resolve(user.pk, site.id) == site_content
        assert resolve(str(user.pk), str(site.id)) == site_content

    def test_resolve_with_wrong_owner_is_not_found(self, create_user, create_site):
        from sites.addressing import resolve
        from sites.exceptions import NotFoundError
        from sites.store import SiteStore
        owner = create_user()
        other = create_user(email='other@example.com')
        site = create_site(user=owner)

        with pytest.raises(NotFoundError):
            resolve(other.pk, site.id)
        SiteStore(owner.pk).publish(owner.pk, site.id)
        with pytest.raises(NotFoundError):
            resolve(other.pk, site.id)

    def test_resolve_malformed_ids_is_not_found(self, db):
        from sites.addressing import resolve
        from sites.exceptions import NotFoundError
        with pytest.raises(NotFoundError):
            resolve('abc', 'not-a-uuid')

    def test_resolve_address_token(self, create_user, create_site, site_content):
        from sites.addressing import encode_address, resolve_address
        from sites.store import SiteStore
        user = create_user()
        site = create_site(user=user)
        SiteStore(user.pk).publish(user.pk, site.id)

        assert resolve_address('#' + encode_address(user.pk, site.id)) == site_content

    def test_resolve_unpublished_after_unpublish(self, create_user, create_site):
        from sites.addressing import resolve
        from sites.exceptions import NotPublishedError
        from sites.store import SiteStore
        user = create_user()
        site = create_site(user=user)
        store = SiteStore(user.pk)
        store.publish(user.pk, site.id)
        store.unpublish(user.pk, site.id)

        with pytest.raises(NotPublishedError):
            resolve(user.pk, site.id)


@pytest.mark.django_db
class TestSiteAPI:

    def test_generate_site(self, authenticated_client, fake_backend):
        from sites.models import Site
        client, user = authenticated_client

        response = client.post(
            '/api/v1/sites/',
            data={'prompt': 'Coffee shop landing page'},
            format='json'
        )
        assert response.status_code == 201
        assert response.data['is_published'] is False
        assert response.data['content']['tailwind'] is True
        assert response.data['address'] == f"p/{user.pk}/{response.data['id']}"
        assert response.data['share_url'].endswith(f"/#p/{user.pk}/{response.data['id']}")
        assert fake_backend == ['Coffee shop landing page']
        assert Site.objects.filter(owner=user).count() == 1

    def test_generate_empty_prompt_never_calls_backend(self, authenticated_client, fake_backend):
        from sites.models import Site
        client, _ = authenticated_client

        response = client.post('/api/v1/sites/', data={'prompt': '   '}, format='json')
        assert response.status_code == 400
        assert response.data['error']['code'] == 'EMPTY_PROMPT'
        assert fake_backend == []
        assert not Site.objects.exists()

    def test_generate_backend_failure_leaves_no_record(self, authenticated_client, monkeypatch):
        from ai.providers import ProviderError
        from sites.models import Site
        client, _ = authenticated_client

        def _fail(prompt, schema, system_instruction):
            raise ProviderError('quota exceeded')

        monkeypatch.setattr('ai.providers.generate_structured', _fail)
        response = client.post('/api/v1/sites/', data={'prompt': 'Coffee'}, format='json')
        assert response.status_code == 502
        assert response.data['error']['code'] == 'GENERATION_FAILED'
        assert not Site.objects.exists()

    def test_generate_malformed_result_leaves_no_record(self, authenticated_client, monkeypatch):
        from sites.models import Site
        client, _ = authenticated_client
        incomplete = {k: v for k, v in COFFEE_CONTENT.items() if k != 'css'}

        monkeypatch.setattr(
            'ai.providers.generate_structured',
            lambda prompt, schema, system_instruction: json.dumps(incomplete),
        )
        response = client.post('/api/v1/sites/', data={'prompt': 'Coffee'}, format='json')
        assert response.status_code == 502
        assert not Site.objects.exists()

    def test_list_sites(self, authenticated_client, create_site, create_user):
        client, user = authenticated_client
        older = create_site(user=user, prompt='older')
        newer = create_site(user=user, prompt='newer')
        create_site(user=create_user(email='other@example.com'))

        response = client.get('/api/v1/sites/')
        assert response.status_code == 200
        assert response.data['count'] == 2
        ids = [r['id'] for r in response.data['results']]
        assert ids == [str(newer.id), str(older.id)]
        assert 'content' not in response.data['results'][0]

    def test_create_then_list_puts_new_record_first(self, authenticated_client, create_site, fake_backend):
        client, user = authenticated_client
        create_site(user=user, prompt='existing')

        created = client.post('/api/v1/sites/', data={'prompt': 'Coffee'}, format='json')
        listed = client.get('/api/v1/sites/')
        assert listed.data['results'][0]['id'] == created.data['id']

    def test_get_site_detail(self, authenticated_client, create_site):
        client, user = authenticated_client
        site = create_site(user=user)

        response = client.get(f'/api/v1/sites/{site.id}/')
        assert response.status_code == 200
        assert response.data['title'] == 'Bean There'
        assert response.data['content']['html'] == COFFEE_CONTENT['html']

    def test_cannot_access_other_user_site(self, authenticated_client, create_user, create_site):
        other_site = create_site(user=create_user(email='other@example.com'))

        client, _ = authenticated_client
        response = client.get(f'/api/v1/sites/{other_site.id}/')
        assert response.status_code == 404
        response = client.post(f'/api/v1/sites/{other_site.id}/publish/')
        assert response.status_code == 404

    def test_publish_twice(self, authenticated_client, create_site):
        client, user = authenticated_client
        site = create_site(user=user)

        for _ in range(2):
            response = client.post(f'/api/v1/sites/{site.id}/publish/')
            assert response.status_code == 200
            assert response.data['is_published'] is True

    def test_unpublish(self, authenticated_client, create_site):
        client, user = authenticated_client
        site = create_site(user=user)
        client.post(f'/api/v1/sites/{site.id}/publish/')

        response = client.post(f'/api/v1/sites/{site.id}/unpublish/')
        assert response.status_code == 200
        assert response.data['is_published'] is False

    def test_replace_content(self, authenticated_client, create_site):
        client, user = authenticated_client
        site = create_site(user=user)

        response = client.put(
            f'/api/v1/sites/{site.id}/content/',
            data={**COFFEE_CONTENT, 'title': 'Edited'},
            format='json'
        )
        assert response.status_code == 200
        assert response.data['title'] == 'Edited'
        assert response.data['prompt'] == 'Coffee shop landing page'

    def test_replace_content_rejects_incomplete_document(self, authenticated_client, create_site):
        client, user = authenticated_client
        site = create_site(user=user)

        response = client.put(
            f'/api/v1/sites/{site.id}/content/',
            data={'title': 'Edited'},
            format='json'
        )
        assert response.status_code == 400
        site.refresh_from_db()
        assert site.title == 'Bean There'

    def test_preview_works_before_publish(self, authenticated_client, create_site):
        client, user = authenticated_client
        site = create_site(user=user)

        response = client.get(f'/api/v1/sites/{site.id}/preview/')
        assert response.status_code == 200
        assert response['Content-Security-Policy'].startswith('sandbox allow-scripts')
        assert 'allow-same-origin' not in response['Content-Security-Policy']
        body = response.content.decode()
        assert '<title>Bean There</title>' in body
        assert COFFEE_CONTENT['html'] in body

    def test_unauthenticated_requests_are_rejected(self, api_client):
        response = api_client.get('/api/v1/sites/')
        assert response.status_code == 401

    def test_prompt_templates_require_elevated_role(self, authenticated_client):
        client, _ = authenticated_client
        response = client.get('/api/v1/sites/prompt-templates/')
        assert response.status_code == 403

    def test_prompt_templates_for_elevated_user(self, api_client, create_user):
        user = create_user(email='admin@example.com', role='elevated')
        refresh = RefreshToken.for_user(user)
        api_client.credentials(HTTP_AUTHORIZATION=f'Bearer {str(refresh.access_token)}')

        response = api_client.get('/api/v1/sites/prompt-templates/')
        assert response.status_code == 200
        assert response.data['total'] == len(response.data['templates'])
        assert any('coffee' in t['text'].lower() for t in response.data['templates'])


@pytest.mark.django_db
class TestPublicResolution:

    def test_public_resolve_gate(self, api_client, create_user, create_site):
        from sites.store import SiteStore
        user = create_user()
        site = create_site(user=user)

        response = api_client.get(f'/api/v1/public/{user.pk}/{site.id}/')
        assert response.status_code == 403
        assert response.data['error']['code'] == 'NOT_PUBLISHED'

        SiteStore(user.pk).publish(user.pk, site.id)
        response = api_client.get(f'/api/v1/public/{user.pk}/{site.id}/')
        assert response.status_code == 200
        assert response.data['content'] == site.content

    def test_public_resolve_unknown_address(self, api_client, create_user, create_site):
        owner = create_user()
        other = create_user(email='other@example.com')
        site = create_site(user=owner)

        response = api_client.get(f'/api/v1/public/{other.pk}/{site.id}/')
        assert response.status_code == 404
        assert response.data['error']['code'] == 'NOT_FOUND'

    def test_public_resolve_by_token(self, api_client, create_user, create_site):
        from sites.store import SiteStore
        user = create_user()
        site = create_site(user=user)
        SiteStore(user.pk).publish(user.pk, site.id)

        response = api_client.get(
            '/api/v1/public/resolve/',
            {'address': f'http://localhost:3000/#p/{user.pk}/{site.id}'}
        )
        assert response.status_code == 200
        assert response.data['address'] == f'p/{user.pk}/{site.id}'

    def test_public_resolve_bad_token(self, api_client):
        response = api_client.get('/api/v1/public/resolve/', {'address': 'nonsense'})
        assert response.status_code == 404

    def test_public_page_is_sandboxed(self, api_client, create_user, create_site):
        from sites.store import SiteStore
        user = create_user()
        site = create_site(user=user)

        response = api_client.get(f'/p/{user.pk}/{site.id}/')
        assert response.status_code == 403

        SiteStore(user.pk).publish(user.pk, site.id)
        response = api_client.get(f'/p/{user.pk}/{site.id}/')
        assert response.status_code == 200
        assert response['Content-Type'].startswith('text/html')
        assert 'sandbox' in response['Content-Security-Policy']
        assert 'X-Frame-Options' not in response


@pytest.mark.django_db
def test_coffee_shop_scenario(create_user, fake_backend):
    """Prompt to published page, end to end."""
    from sites.addressing import resolve
    from sites.exceptions import NotPublishedError
    from sites.generator import SiteGenerator
    from sites.rendering import render
    from sites.store import SiteStore

    content = SiteGenerator().generate("Coffee shop landing page")
    assert content.tailwind_enabled is True

    user = create_user(email='u1@example.com')
    store = SiteStore(user.pk)
    record = store.create(user.pk, "Coffee shop landing page", content)
    assert record.is_published is False

    with pytest.raises(NotPublishedError):
        resolve(user.pk, record.id)

    store.publish(user.pk, record.id)
    resolved = resolve(user.pk, record.id)
    assert resolved == content

    mounted = render(resolved)
    assert f'<title>{content.title}</title>' in mounted.document

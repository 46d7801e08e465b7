"""
Core — Exception Handler & Renderer Tests

@file core/tests/test_exceptions.py
"""

import json

from django.http import Http404
from rest_framework.response import Response

from core.exceptions import (
    BusinessRuleViolation,
    HierarchyTargetingError,
    ResourceNotFoundError,
    standard_exception_handler,
)
from core.renderers import StandardJSONRenderer


class TestStandardExceptionHandler:
    def test_targeting_error_envelope(self):
        response = standard_exception_handler(HierarchyTargetingError(), {})
        assert response.status_code == 400
        assert response.data['success'] is False
        assert response.data['code'] == 'MIXED_HIERARCHY_TARGETING'
        assert 'cannot mix ORIGINAL, EXPATRIATE, and SECTOR' in str(response.data['errors']['detail'])

    def test_targeting_error_is_business_rule_violation(self):
        assert issubclass(HierarchyTargetingError, BusinessRuleViolation)

    def test_not_found(self):
        response = standard_exception_handler(ResourceNotFoundError(detail='Region x not found.'), {})
        assert response.status_code == 404
        assert response.data['code'] == 'RESOURCE_NOT_FOUND'

    def test_http404_mapped(self):
        response = standard_exception_handler(Http404(), {})
        assert response.status_code == 404
        assert response.data['code'] == 'RESOURCE_NOT_FOUND'


class TestStandardJSONRenderer:
    def _render(self, data, status_code=200):
        response = Response(data, status=status_code)
        body = StandardJSONRenderer().render(data, renderer_context={'response': response})
        return json.loads(body)

    def test_wraps_plain_payload(self):
        assert self._render({'id': 1}) == {'success': True, 'data': {'id': 1}}

    def test_paginated_payload(self):
        rendered = self._render({'count': 1, 'next': None, 'previous': None, 'results': [{'id': 1}]})
        assert rendered['data'] == [{'id': 1}]
        assert rendered['meta']['count'] == 1

    def test_existing_envelope_untouched(self):
        payload = {'success': True, 'data': []}
        assert self._render(payload) == payload

    def test_error_untouched(self):
        payload = {'success': False, 'errors': {}, 'code': 'X'}
        assert self._render(payload, status_code=400) == payload

"""
Tests for the customer list and dashboard stats endpoints
"""

from datetime import datetime, timedelta

from reviewguard.models.message import MessageType

from review_test_utils import ReviewGuardTestUtils


class TestCustomerList:

    def test_requires_authentication(self, client, user):
        assert client.get('/api/customers').status_code == 401

    def test_counts_and_last_message(self, client, user, auth_headers):
        now = datetime.utcnow()
        ReviewGuardTestUtils.create_review_request(user, name='Jane Doe', sent_at=now - timedelta(days=5))
        ReviewGuardTestUtils.create_review_request(
            user, name='Jane Doe', sent_at=now - timedelta(days=1),
            message_type=MessageType.GENERAL.value, review_status=None
        )
        ReviewGuardTestUtils.create_review_request(
            user, name='Bob Smith', phone='+15559876543', sent_at=now - timedelta(days=3)
        )

        response = client.get('/api/customers', headers=auth_headers)

        data = response.get_json()
        assert response.status_code == 200
        assert [c['name'] for c in data['customers']] == ['Jane Doe', 'Bob Smith']
        jane = data['customers'][0]
        assert jane['message_count'] == 2
        assert jane['last_message_at'] == (now - timedelta(days=1)).isoformat()
        assert data['customers'][1]['message_count'] == 1
        assert data['pagination']['total'] == 2

    def test_other_tenant_customers_hidden(self, client, user, auth_headers):
        other = ReviewGuardTestUtils.create_test_user(email='other@shop.example.com')
        ReviewGuardTestUtils.create_review_request(other, name='Not Mine', phone='+15550001111')
        ReviewGuardTestUtils.create_review_request(user, name='Jane Doe')

        data = client.get('/api/customers', headers=auth_headers).get_json()

        assert [c['name'] for c in data['customers']] == ['Jane Doe']

    def test_search_and_pagination(self, client, user, auth_headers):
        ReviewGuardTestUtils.create_review_request(user, name='Jane Doe')
        ReviewGuardTestUtils.create_review_request(user, name='Bob Smith', phone='+15559876543')
        ReviewGuardTestUtils.create_review_request(user, name='Bobby Tables', phone='+15552223333')

        data = client.get('/api/customers?q=bob&per_page=1', headers=auth_headers).get_json()

        assert len(data['customers']) == 1
        assert data['pagination'] == {'page': 1, 'per_page': 1, 'total': 2, 'pages': 2}

    def test_empty(self, client, user, auth_headers):
        data = client.get('/api/customers', headers=auth_headers).get_json()

        assert data['customers'] == []
        assert data['pagination']['total'] == 0


class TestDashboardStats:

    def test_requires_authentication(self, client, user):
        assert client.get('/api/stats').status_code == 401

    def test_stats(self, client, user, auth_headers):
        now = datetime.utcnow()
        ReviewGuardTestUtils.create_review_request(user, name='Jane Doe', sent_at=now)
        ReviewGuardTestUtils.create_review_request(
            user, name='Bob Smith', phone='+15559876543', sent_at=now - timedelta(days=4)
        )
        ReviewGuardTestUtils.create_review_request(
            user, name='Ann Lee', phone='+15552223333', sent_at=now - timedelta(days=10),
            review_status='reviewed', review_received_at=now - timedelta(days=9)
        )
        ReviewGuardTestUtils.create_review_request(
            user, name='Jane Doe', sent_at=now - timedelta(days=2),
            message_type=MessageType.GENERAL.value, review_status=None
        )

        response = client.get('/api/stats', headers=auth_headers)

        stats = response.get_json()['stats']
        assert response.status_code == 200
        assert stats['messages_today'] == 1
        assert stats['messages_this_week'] == 3
        assert stats['total_messages'] == 4
        assert stats['total_customers'] == 3
        assert stats['by_type'] == {'review': 3, 'general': 1, 'review_follow_up': 0}
        assert stats['review_funnel'] == {
            'pending': 2, 'follow_up_sent': 0, 'link_clicked': 0, 'reviewed': 1
        }
        # Bob's request is past its 3 day follow-up window
        assert stats['needs_follow_up'] == 1
        assert [m['customer_name'] for m in stats['recent_messages']] == [
            'Jane Doe', 'Jane Doe', 'Bob Smith', 'Ann Lee'
        ]

    def test_stats_scoped_to_tenant(self, client, user, auth_headers):
        other = ReviewGuardTestUtils.create_test_user(email='other@shop.example.com')
        ReviewGuardTestUtils.create_review_request(other, name='Not Mine', phone='+15550001111')

        stats = client.get('/api/stats', headers=auth_headers).get_json()['stats']

        assert stats['total_messages'] == 0
        assert stats['total_customers'] == 0
        assert stats['review_funnel']['pending'] == 0
        assert stats['recent_messages'] == []

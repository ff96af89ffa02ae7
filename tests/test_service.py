"""
Тесты для сервиса сертификатов
"""
import uuid
from datetime import datetime
from unittest.mock import MagicMock

import pytest

from certdesk.exceptions import (
    BulkCreateError, CertificateNotFoundError, GenerationError, UnauthorizedError
)
from certdesk.models import Actor, CertificateRequest
from certdesk.service import CertificateService


def make_request(name="Asha Rao", role="Backend Intern", duration="Jun–Aug 2024"):
    return CertificateRequest(candidate_name=name, role=role, duration=duration)


class TestCreateAndLookup:
    """Создание и публичный поиск"""

    def test_create_then_get_by_access_code(self, service, actor):
        """Созданный сертификат находится по коду доступа"""
        result = service.create_certificate(actor, make_request())

        certificate = service.get_by_access_code(result.access_code)

        assert certificate is not None
        assert certificate.id == result.id
        assert certificate.candidate_name == "Asha Rao"
        assert certificate.role == "Backend Intern"
        assert certificate.duration == "Jun–Aug 2024"
        assert certificate.access_code == result.access_code
        assert certificate.created_by == "admin-1"

    def test_get_by_unknown_code_returns_none(self, service, actor):
        """Неизвестный код: явный результат 'не найден'"""
        service.create_certificate(actor, make_request())

        assert service.get_by_access_code("not-a-real-code") is None
        assert service.get_by_access_code("") is None
        assert service.get_by_access_code("   ") is None

    def test_access_code_is_case_sensitive(self, service, actor):
        """Поиск по коду учитывает регистр"""
        result = service.create_certificate(actor, make_request())
        upper_code = result.access_code.upper()

        if upper_code != result.access_code:
            assert service.get_by_access_code(upper_code) is None

    def test_access_codes_are_unique(self, service, actor):
        """У каждого сертификата свой код"""
        codes = {service.create_certificate(actor, make_request(name=f"Intern {i}")).access_code
                 for i in range(10)}

        assert len(codes) == 10

    def test_create_requires_actor(self, service):
        """Создание без авторизации запрещено"""
        with pytest.raises(UnauthorizedError):
            service.create_certificate(None, make_request())

        assert service.list_certificates(None) == []

    def test_create_retries_on_access_code_conflict(self, certificate_repo, actor):
        """При конфликте кода доступа код генерируется заново"""
        generator = MagicMock()
        generator.generate.side_effect = ["dup-code", "dup-code", "fresh-code"]
        service = CertificateService(certificate_repo, code_generator=generator, access_code_attempts=3)

        first = service.create_certificate(actor, make_request(name="Ben"))
        second = service.create_certificate(actor, make_request(name="Cara"))

        assert first.access_code == "dup-code"
        assert second.access_code == "fresh-code"
        assert generator.generate.call_count == 3

    def test_create_gives_up_after_attempts(self, certificate_repo, actor):
        """Если все попытки конфликтуют: GenerationError"""
        generator = MagicMock()
        generator.generate.return_value = "dup-code"
        service = CertificateService(certificate_repo, code_generator=generator, access_code_attempts=2)
        service.create_certificate(actor, make_request(name="Ben"))

        with pytest.raises(GenerationError):
            service.create_certificate(actor, make_request(name="Cara"))

        assert certificate_repo.count_certificates() == 1


class TestBulkCreate:
    """Массовое создание"""

    def test_bulk_create_preserves_order(self, service, actor):
        """N записей: N сертификатов в порядке запроса"""
        requests = [make_request(name=f"Intern {i}", role="QA", duration="") for i in range(5)]

        results = service.bulk_create_certificates(actor, requests)

        assert [item.candidate_name for item in results] == [f"Intern {i}" for i in range(5)]
        assert len({item.access_code for item in results}) == 5
        assert all(item.role == "QA" and item.duration == "" for item in results)
        assert len(service.list_certificates(actor)) == 5

    def test_bulk_create_requires_actor(self, service):
        """Массовое создание без авторизации запрещено"""
        with pytest.raises(UnauthorizedError):
            service.bulk_create_certificates(None, [make_request()])

    def test_bulk_create_aborts_and_keeps_persisted(self, service, actor, certificate_repo, monkeypatch):
        """Сбой на записи прерывает остаток, сохраненные записи остаются"""
        original_create = certificate_repo.create_certificate
        calls = {"count": 0}

        def flaky_create(data):
            calls["count"] += 1
            if calls["count"] == 2:
                raise RuntimeError("connection lost")
            return original_create(data)

        monkeypatch.setattr(certificate_repo, "create_certificate", flaky_create)
        requests = [make_request(name=name) for name in ("Ben", "Cara", "Dev")]

        with pytest.raises(BulkCreateError) as exc_info:
            service.bulk_create_certificates(actor, requests)

        assert [item.candidate_name for item in exc_info.value.created] == ["Ben"]
        assert calls["count"] == 2
        assert certificate_repo.count_certificates() == 1


class TestUpdateDeleteList:
    """Изменение, удаление и список"""

    def test_update_changes_only_mutable_fields(self, service, actor):
        """Код доступа, дата выдачи и создатель не меняются"""
        created = service.create_certificate(actor, make_request())
        before = service.get_by_access_code(created.access_code)

        other_admin = Actor(id="admin-2")
        updated = service.update_certificate(
            other_admin,
            created.id,
            make_request(name="Asha R.", role="Platform Intern", duration="Jun–Sep 2024")
        )
        after = service.get_by_access_code(created.access_code)

        assert updated.candidate_name == after.candidate_name == "Asha R."
        assert after.role == "Platform Intern"
        assert after.duration == "Jun–Sep 2024"
        assert after.access_code == before.access_code
        assert after.issue_date == before.issue_date
        assert after.created_by == before.created_by == "admin-1"
        assert after.id == before.id

    def test_update_requires_actor(self, service, actor):
        """Изменение без авторизации запрещено"""
        created = service.create_certificate(actor, make_request())

        with pytest.raises(UnauthorizedError):
            service.update_certificate(None, created.id, make_request(name="Other"))

        assert service.get_by_access_code(created.access_code).candidate_name == "Asha Rao"

    def test_update_unknown_certificate(self, service, actor):
        """Изменение несуществующего сертификата"""
        with pytest.raises(CertificateNotFoundError):
            service.update_certificate(actor, str(uuid.uuid4()), make_request())

        with pytest.raises(CertificateNotFoundError):
            service.update_certificate(actor, "not-a-uuid", make_request())

    def test_delete_removes_certificate(self, service, actor):
        """Удаленный сертификат больше не находится"""
        created = service.create_certificate(actor, make_request())

        assert service.delete_certificate(actor, created.id) is True
        assert service.get_by_access_code(created.access_code) is None
        assert service.list_certificates(actor) == []

    def test_delete_unknown_is_not_an_error(self, service, actor):
        """Удаление несуществующего сертификата не является ошибкой"""
        assert service.delete_certificate(actor, str(uuid.uuid4())) is False
        assert service.delete_certificate(actor, "not-a-uuid") is False

    def test_delete_requires_actor(self, service, actor):
        """Удаление без авторизации запрещено"""
        created = service.create_certificate(actor, make_request())

        with pytest.raises(UnauthorizedError):
            service.delete_certificate(None, created.id)

        assert service.get_by_access_code(created.access_code) is not None

    def test_list_newest_first(self, service, actor):
        """Список отсортирован по дате выдачи, новые первыми"""
        service.create_certificate(actor, make_request(name="First"))
        service.create_certificate(actor, make_request(name="Second"))
        service.create_certificate(actor, make_request(name="Third"))

        names = [certificate.candidate_name for certificate in service.list_certificates(actor)]

        assert names == ["Third", "Second", "First"]

    def test_get_certificates_by_ids(self, service, actor):
        """Выборка по ID пропускает неизвестные ID"""
        first = service.create_certificate(actor, make_request(name="First"))
        service.create_certificate(actor, make_request(name="Second"))

        selected = service.get_certificates_by_ids(actor, [first.id, str(uuid.uuid4()), "garbage"])

        assert [certificate.candidate_name for certificate in selected] == ["First"]

        with pytest.raises(UnauthorizedError):
            service.get_certificates_by_ids(None, [first.id])

    def test_format_certificate_info(self, service, sample_certificate):
        """Форматирование информации о сертификате"""
        info = service.format_certificate_info(sample_certificate, detailed=True)

        assert "Asha Rao" in info
        assert "01.09.2024" in info
        assert sample_certificate.access_code in info
        assert "admin-1" in info

    def test_validate_certificate_data(self, service):
        """Проверка данных без создания сертификата"""
        assert service.validate_certificate_data("Asha Rao", "Backend Intern", "") == []
        assert len(service.validate_certificate_data("", "Backend Intern", "")) == 1


class TestRepositoryOrdering:
    """Порядок записей с одинаковой датой выдачи"""

    def test_same_issue_date_follows_insertion_order(self, certificate_repo, service, actor):
        """При равной дате выдачи новые записи идут первыми"""
        issued = datetime(2024, 9, 1, 10, 0)
        for index, name in enumerate(["Ben", "Cara", "Dev"]):
            certificate_repo.create_certificate({
                "candidate_name": name,
                "role": "QA",
                "duration": "",
                "access_code": f"code-{index}",
                "issue_date": issued,
                "created_by": actor.id
            })

        listed = [certificate.candidate_name for certificate in service.list_certificates(actor)]
        selected = service.get_certificates_by_ids(
            actor, [certificate.id for certificate in service.list_certificates(actor)]
        )

        assert listed == ["Dev", "Cara", "Ben"]
        assert [certificate.candidate_name for certificate in selected] == ["Dev", "Cara", "Ben"]

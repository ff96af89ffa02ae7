"""
CLI интерфейс для управления сертификатами
"""
import argparse
import asyncio
import logging
import sys
from pathlib import Path
from typing import Optional

from config.settings import get_settings
from certdesk.exceptions import (
    BulkCreateError, CertificateError, CertificateNotFoundError,
    UnauthorizedError, ValidationError
)
from certdesk.exporter import CertificateExporter
from certdesk.importer import SpreadsheetImporter
from certdesk.models import Actor, CertificateRequest
from certdesk.service import CertificateService, get_certificate_service


class CertificateCLI:
    """CLI интерфейс для работы с сертификатами"""

    def __init__(self, service: CertificateService = None, exporter: CertificateExporter = None):
        self.settings = get_settings()
        self.setup_logging()
        self.service = service or get_certificate_service()
        self.importer = SpreadsheetImporter(self.service)
        self.exporter = exporter
        self.actor_id: Optional[str] = self.settings.cli_actor

    def setup_logging(self):
        """Настройка логирования"""
        self.settings.log_file.parent.mkdir(parents=True, exist_ok=True)
        logging.basicConfig(
            level=getattr(logging, self.settings.log_level),
            format='%(asctime)s - %(name)s - %(levelname)s - %(message)s',
            handlers=[
                logging.FileHandler(self.settings.log_file, encoding='utf-8'),
                logging.StreamHandler()
            ]
        )
        self.logger = logging.getLogger(__name__)

    @property
    def actor(self) -> Optional[Actor]:
        """Оператор CLI (None, если не указан)"""
        return Actor(id=self.actor_id) if self.actor_id else None

    def init_db(self, args):
        """Создание таблиц БД"""
        db_manager = self.service.certificate_repo.db_manager
        if args.drop:
            db_manager.drop_tables()
            print("✓ Таблицы базы данных удалены")
        db_manager.create_tables()
        print("✓ Таблицы базы данных созданы")

    def create_certificate(self, args):
        """Создание сертификата через CLI"""
        try:
            errors = self.service.validate_certificate_data(args.name, args.role, args.duration)
            if errors:
                print("✗ Ошибки валидации:")
                for error in errors:
                    print(f"  - {error}")
                sys.exit(1)

            request = CertificateRequest(candidate_name=args.name, role=args.role, duration=args.duration)
            result = self.service.create_certificate(self.actor, request)

            print("✓ Сертификат успешно создан:")
            print(f"  ID: {result.id}")
            print(f"  Код доступа: {result.access_code}")
            print(f"  Ссылка: {self.settings.public_origin}/c/{result.access_code}")

        except Exception as e:
            self._fail(e, "создания сертификата")

    def import_certificates(self, args):
        """Импорт сертификатов из таблицы"""
        path = Path(args.file)
        try:
            if not path.exists():
                raise ValidationError(f"Файл не найден: {path}")

            created = self.importer.import_file(self.actor, path.read_bytes(), path.name)

            print(f"✓ Импортировано сертификатов: {len(created)}")
            for item in created:
                print(f"  {item.candidate_name} — {item.role}: {item.access_code}")

        except BulkCreateError as e:
            print(f"✗ Импорт прерван: {e}")
            print(f"  Сохранено до ошибки: {len(e.created)}")
            self.logger.error(f"Ошибка импорта сертификатов: {e}")
            sys.exit(1)
        except Exception as e:
            self._fail(e, "импорта")

    async def export_certificates(self, args):
        """Экспорт таблицы и QR-кодов в директорию"""
        try:
            if args.all:
                if self.actor is None:
                    raise UnauthorizedError("Unauthorized")
                certificates = self.service.list_certificates(self.actor)
            else:
                certificates = self.service.get_certificates_by_ids(self.actor, args.ids or [])

            exporter = self.exporter or CertificateExporter()
            result = await exporter.export(certificates)
            paths = result.save(Path(args.output))

            print(f"✓ Экспортировано сертификатов: {len(certificates)}")
            for path in paths:
                print(f"  {path}")

            if result.has_failures:
                print(f"⚠ Таблица сохранена, но QR-коды не получены для: {', '.join(result.failed)}")

        except Exception as e:
            self._fail(e, "экспорта")

    def list_certificates(self, args):
        """Список сертификатов"""
        try:
            if self.actor is None:
                raise UnauthorizedError("Unauthorized")

            certificates = self.service.list_certificates(self.actor)
            if not certificates:
                print("  Сертификаты не найдены")
                return

            print(f"Сертификатов: {len(certificates)}")
            for i, certificate in enumerate(certificates, 1):
                print(f"  {i}. {certificate.candidate_name} — {certificate.role} "
                      f"({certificate.formatted_issue_date}) [{certificate.id}] "
                      f"{certificate.viewer_link(self.settings.public_origin)}")

        except Exception as e:
            self._fail(e, "получения списка")

    def show_certificate(self, args):
        """Публичная проверка сертификата по коду доступа"""
        try:
            certificate = self.service.get_by_access_code(args.access_code)

            if certificate is None:
                print(f"✗ Сертификат с кодом {args.access_code} не найден")
                return

            print("✓ Сертификат найден:")
            for line in self.service.format_certificate_info(certificate).splitlines():
                print(f"  {line}")

        except Exception as e:
            self._fail(e, "проверки")

    def update_certificate(self, args):
        """Изменение сертификата"""
        try:
            request = CertificateRequest(candidate_name=args.name, role=args.role, duration=args.duration)
            certificate = self.service.update_certificate(self.actor, args.certificate_id, request)

            print("✓ Сертификат изменен:")
            for line in self.service.format_certificate_info(certificate, detailed=True).splitlines():
                print(f"  {line}")

        except Exception as e:
            self._fail(e, "изменения сертификата")

    def delete_certificate(self, args):
        """Удаление сертификата"""
        try:
            if self.service.delete_certificate(self.actor, args.certificate_id):
                print(f"✓ Сертификат {args.certificate_id} удален")
            else:
                print(f"  Сертификат {args.certificate_id} не найден")

        except Exception as e:
            self._fail(e, "удаления сертификата")

    def _fail(self, error: Exception, action: str):
        """Вывод ошибки и завершение с кодом 1"""
        if isinstance(error, UnauthorizedError):
            print("✗ Не указан оператор: используйте --actor или CLI_ACTOR")
        elif isinstance(error, (ValidationError, CertificateNotFoundError)):
            print(f"✗ Ошибка {action}: {error}")
        elif isinstance(error, (CertificateError, ValueError)):
            print(f"✗ Ошибка {action}: {error}")
            self.logger.error(f"Ошибка {action}: {error}")
        else:
            print(f"✗ Ошибка: {error}")
            self.logger.error(f"Неожиданная ошибка {action}: {error}")
        sys.exit(1)

    def main(self, argv=None):
        """Главная функция CLI"""
        parser = argparse.ArgumentParser(
            description="Выдача и проверка сертификатов о стажировке",
            formatter_class=argparse.RawDescriptionHelpFormatter,
            epilog="""
Примеры использования:
  %(prog)s --actor admin create --name "Asha Rao" --role "Backend Intern" --duration "Jun–Aug 2024"
  %(prog)s --actor admin import interns.xlsx
  %(prog)s --actor admin export --all --output exports
  %(prog)s show k3j9x0q1w2e4rt5y6u7i8o9p0a
            """
        )
        parser.add_argument('--actor', help='ID оператора (по умолчанию CLI_ACTOR)')

        subparsers = parser.add_subparsers(dest='command', help='Доступные команды')

        init_parser = subparsers.add_parser('init-db', help='Создание таблиц БД')
        init_parser.add_argument('--drop', action='store_true', help='Удалить таблицы перед созданием')

        create_parser = subparsers.add_parser('create', help='Создание сертификата')
        create_parser.add_argument('--name', required=True, help='Имя стажера')
        create_parser.add_argument('--role', required=True, help='Должность')
        create_parser.add_argument('--duration', default='', help='Период стажировки')

        import_parser = subparsers.add_parser('import', help='Импорт из таблицы .xlsx/.xls')
        import_parser.add_argument('file', help='Путь к файлу')

        export_parser = subparsers.add_parser('export', help='Экспорт таблицы и QR-кодов')
        export_parser.add_argument('--output', required=True, help='Директория для файлов')
        export_group = export_parser.add_mutually_exclusive_group(required=True)
        export_group.add_argument('--ids', nargs='+', help='ID выбранных сертификатов')
        export_group.add_argument('--all', action='store_true', help='Все сертификаты')

        subparsers.add_parser('list', help='Список сертификатов')

        show_parser = subparsers.add_parser('show', help='Проверка сертификата по коду доступа')
        show_parser.add_argument('access_code', help='Код доступа')

        update_parser = subparsers.add_parser('update', help='Изменение сертификата')
        update_parser.add_argument('certificate_id', help='ID сертификата')
        update_parser.add_argument('--name', required=True, help='Имя стажера')
        update_parser.add_argument('--role', required=True, help='Должность')
        update_parser.add_argument('--duration', default='', help='Период стажировки')

        delete_parser = subparsers.add_parser('delete', help='Удаление сертификата')
        delete_parser.add_argument('certificate_id', help='ID сертификата')

        args = parser.parse_args(argv)

        if not args.command:
            parser.print_help()
            return

        if args.actor:
            self.actor_id = args.actor

        commands = {
            'init-db': self.init_db,
            'create': self.create_certificate,
            'import': self.import_certificates,
            'list': self.list_certificates,
            'show': self.show_certificate,
            'update': self.update_certificate,
            'delete': self.delete_certificate,
        }

        if args.command == 'export':
            asyncio.run(self.export_certificates(args))
        else:
            commands[args.command](args)


def run():
    """Точка входа консольной команды"""
    cli = CertificateCLI()
    cli.main()


if __name__ == '__main__':
    run()

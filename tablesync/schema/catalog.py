"""
The fixed catalog of tables that are synchronized from master to test.

Large tables are synced first, then the normal ones. Each group is ordered by
foreign key dependencies on its own.
"""
import logging
from pathlib import Path
from typing import Iterable, List, Optional, Sequence, Union

from .dependency_parser import ParseResult, SchemaDependencyParser
from .ordering import get_ordered_tables

TABLES_LARGE = [
    'transacties_archief', 'bezettingsdata', 'transacties', 'webservice_log',
    'accounts_pasids', 'wachtrij_transacties', 'wachtrij_pasids', 'gemeenteaccounts',
    'accounts', 'bezettingsdata_day_hour_cache', 'financialtransactions', 'emails',
]

TABLES_NORMAL = [
    'abonnementen', 'abonnementsvorm_fietsenstalling', 'abonnementsvorm_fietstype',
    'abonnementsvormen', 'account_transacties', 'articles', 'articles_templates',
    'barcoderegister', 'bezettingsdata_tmp', 'bikeparklog', 'bulkreservering',
    'bulkreserveringuitzondering', 'contact_contact', 'contact_fietsenstalling',
    'contact_report_settings', 'contacts', 'contacts_faq', 'contacts_fietsberaad',
    'documenttemplates', 'ds_sections', 'externe_apis', 'externe_apis_locaties',
    'faq', 'fietsenstalling_plek', 'fietsenstalling_plek_bezetting',
    'fietsenstalling_sectie', 'fietsenstalling_sectie_kostenperioden',
    'fietsenstallingen', 'fietsenstallingen_services', 'fietsenstallingen_winkansen',
    'fietsenstallingtypen', 'fietstypen', 'fmsservice_permit', 'fmsservicelog',
    'historischesaldos', 'instellingen', 'klanttypen', 'log', 'lopers', 'loterij_log',
    'mailings_lists', 'mailings_members', 'mailings_messages', 'mailings_standaardteksten',
    'modules', 'modules_contacts', 'modules_contacts_copy1', 'plaats_fietstype',
    'presentations', 'presentations_ticker', 'prijswinnaars', 'prijswinnaars_backup',
    'prijzen', 'prijzenpot', 'producten', 'rapportageinfo', 'schema_version',
    'sectie_fietstype', 'sectie_fietstype_tmp', 'security_roles', 'security_users',
    'security_users_sites', 'services', 'sleutelhangerreeksen', 'stallingsduur_cache',
    'tariefcodes', 'tariefregels', 'tariefregels_copy1', 'tariefregels_copy2',
    'tariefregels_copy3', 'tariefregels_copy4', 'tariefregels_copy5', 'tariefregels_tmp',
    'texts', 'tmp_audit_grabbelton_na', 'tmp_audit_grabbelton_voor',
    'transacties_archief_tmp', 'transacties_gemeente_totaal', 'transacties_view',
    'trekkingen', 'uitzonderingenopeningstijden', 'unieke_bezoekers',
    'users_beheerder_log', 'v_ds_surveyareas_parkinglocations', 'vw_fmsservice_errors',
    'vw_locations', 'vw_lopende_transacties', 'vw_pasids', 'vw_stallingstegoeden',
    'vw_stallingstegoedenexploitant', 'wachtlijst', 'wachtlijst_fietstype',
    'wachtlijst_item', 'wachtrij_betalingen', 'wachtrij_sync', 'winkansen',
    'winkansen_reminderteksten', 'winkansen_zelf_inzet',
]


class TableCatalog:
    """
    Known tables plus lazy access to their dependency graph.

    The schema is parsed on first use and the result cached. A missing or
    malformed schema leaves every group in its declared order.
    """

    def __init__(self,
                 groups: Sequence[Sequence[str]] = (TABLES_LARGE, TABLES_NORMAL),
                 schema_path: Optional[Union[str, Path]] = None,
                 schema_text: Optional[str] = None,
                 parser: Optional[SchemaDependencyParser] = None):
        self.groups = [list(group) for group in groups]
        self.schema_path = Path(schema_path) if schema_path else None
        self.schema_text = schema_text
        self.parser = parser or SchemaDependencyParser()
        self.logger = logging.getLogger(f"{__name__}.TableCatalog")
        self._parse_result: Optional[ParseResult] = None
        self._all_tables: Optional[List[str]] = None

    def dependency_graph(self) -> ParseResult:
        if self._parse_result is None:
            if self.schema_text is not None:
                self._parse_result = self.parser.parse(self.schema_text)
            elif self.schema_path is not None:
                self._parse_result = self.parser.parse_file(self.schema_path)
            else:
                self._parse_result = ParseResult(error="No schema configured")
            if not self._parse_result.ok:
                self.logger.warning(f"Dependency information unavailable: {self._parse_result.error}")
        return self._parse_result

    @property
    def all_tables(self) -> List[str]:
        if self._all_tables is None:
            ordered: List[str] = []
            for group in self.groups:
                ordered.extend(self.order(group))
            self._all_tables = list(dict.fromkeys(ordered))
        return list(self._all_tables)

    def contains(self, table: str) -> bool:
        return any(table in group for group in self.groups)

    def unknown(self, tables: Iterable[str]) -> List[str]:
        return [table for table in tables if not self.contains(table)]

    def order(self, tables: Sequence[str]) -> List[str]:
        return get_ordered_tables(tables, self.dependency_graph())

    def __len__(self) -> int:
        return len(self.all_tables)

"""Engage XML API client.

``EngagePod`` logs in on construction and exposes one method per remote
operation. Every method builds an ``EnvelopeRequest``, sends it through the
``SessionManager`` and validates the reply with ``check_response``.
"""

from __future__ import annotations

import logging
from collections.abc import Iterable, Mapping, Sequence
from datetime import datetime
from typing import Any, NamedTuple

from engage_pod.enums.lists import ListType
from engage_pod.errors import ApiError
from engage_pod.settings.main import EngageSettings
from engage_pod.utilities.classifier import check_response, fault_message, is_success, result_of
from engage_pod.utilities.envelope import EnvelopeRequest, RequestBuilder
from engage_pod.utilities.request import Request
from engage_pod.utilities.result import Result
from engage_pod.utilities.session import SessionManager, SessionStore

logger = logging.getLogger(__name__)

NOT_A_MEMBER_FAULT = "Error removing recipient from list. Recipient is not a member of this list."

SCHEDULE_FORMAT = "%m/%d/%Y %I:%M:%S %p"

# 1 = created manually, 2 = opted in
CREATED_MANUALLY = 1

DEFAULT_JOIN_MAP = {"Country": "Country", "Language": "Language"}


class ExportJob(NamedTuple):
    """Data job started by ``ExportTable``."""

    job_id: str
    file_path: str


def _relational_rows(rows: Iterable[Mapping[str, Any]], tag: str) -> dict[str, Any]:
    """Build ``ROWS > ROW* > {tag}*`` with the column name as ``name`` attribute."""
    processed = []
    for row in rows:
        processed.append({tag: [{"@name": name, "#text": value} for name, value in row.items()]})
    return {"ROW": processed}


class EngagePod:
    """Client for one Engage pod.

    Construction logs in; a failed login raises ``AuthenticationError`` and no
    client is returned.

    Args:
        config: ``EngageSettings``, a mapping with ``engage_server``,
            ``username`` and ``password``, or None to read the environment.
        transport: Optional ``Request`` instance (defaults to one using the
            configured timeout).
        session_store: Optional store used to reuse sessions across instances.
    """

    def __init__(
        self,
        config: EngageSettings | Mapping[str, Any] | None = None,
        transport: Request | None = None,
        session_store: SessionStore | None = None,
    ) -> None:
        if config is None:
            settings = EngageSettings()
        elif isinstance(config, EngageSettings):
            settings = config
        else:
            settings = EngageSettings.from_options(config)

        self.settings = settings
        self._store = session_store
        self._store_key = f"{settings.engage_server}:{settings.username}"
        self._sessions = SessionManager(settings.base_url, transport or Request(timeout=settings.timeout))
        # Set while a stored session has not yet been confirmed by a reply
        self._resumed = False

        cached = self._store.load(self._store_key) if self._store else None
        if cached is not None:
            logger.debug("Reusing stored session for %s", self._store_key)
            self._sessions.resume(cached)
            self._resumed = True
        else:
            self._login()

    def _login(self) -> None:
        session = self._sessions.login(self.settings.username, self.settings.password)
        if self._store:
            self._store.save(self._store_key, session)

    # --- Core ---

    @property
    def session_manager(self) -> SessionManager:
        return self._sessions

    @property
    def endpoint(self) -> str:
        """Endpoint URL including the session encoding."""
        return self._sessions.current_endpoint

    def invoke(
        self,
        method: str,
        params: Mapping[str, Any] | None = None,
        required_fields: Iterable[str] = (),
        repeatable_fields: Iterable[str] = (),
    ) -> Result:
        """Call remote ``method`` with ``params`` and return its checked result."""
        request = RequestBuilder(method).with_params(params).build()
        return self._call(request, required_fields, repeatable_fields)

    def _call(
        self,
        request: EnvelopeRequest,
        required_fields: Iterable[str] = (),
        repeatable_fields: Iterable[str] = (),
    ) -> Result:
        envelope = self._send(request, repeatable_fields)
        return check_response(request.method, envelope, required_fields)

    def _send(self, request: EnvelopeRequest, repeatable_fields: Iterable[str] = ()) -> dict[str, Any]:
        """Send ``request``; a rejected stored session is replaced by a fresh login once."""
        envelope = self._sessions.send(request, repeatable_fields)
        if not self._resumed:
            return envelope

        self._resumed = False
        if is_success(result_of(envelope)):
            return envelope

        logger.warning(
            "Stored session for %s was rejected (%s), logging in again",
            self._store_key,
            fault_message(envelope),
        )
        self._store.discard(self._store_key)
        self._login()
        return self._sessions.send(request, repeatable_fields)

    def log_out(self) -> bool:
        """Terminate the session with Engage."""
        success = self._sessions.logout()
        if success and self._store:
            self._store.discard(self._store_key)
        return success

    # --- Lists and queries ---

    def get_lists(
        self,
        list_type: ListType | int = ListType.DATABASES_AND_QUERIES,
        is_private: bool = True,
        folder: str | int | None = None,
    ) -> list[Any]:
        """Fetch the lists of ``list_type`` (see ``ListType``)."""
        request = (
            RequestBuilder("GetLists")
            .with_visibility("VISIBILITY", is_private)
            .with_param("FOLDER_ID", folder)
            .with_param("LIST_TYPE", int(list_type))
            .build()
        )
        result = self._call(request, ["LIST"], ["LIST"])
        return result.get_list("LIST")

    def get_mailing_templates(self, is_private: bool = True) -> list[Any]:
        request = (
            RequestBuilder("GetMailingTemplates")
            .with_visibility("VISIBILITY", is_private)
            .build()
        )
        result = self._call(request, ["MAILING_TEMPLATE"], ["MAILING_TEMPLATE"])
        return result.get_list("MAILING_TEMPLATE")

    def calculate_query(self, query_id: str | int) -> str:
        request = RequestBuilder("CalculateQuery").with_param("QUERY_ID", query_id).build()
        return self._call(request, ["JOB_ID"]).text("JOB_ID")

    def get_scheduled_mailings(self) -> Result:
        request = RequestBuilder("GetSentMailingsForOrg").with_param("SCHEDULED", None).build()
        return self._call(request, repeatable_fields=["Mailing"])

    def get_list_meta_data(self, list_id: str | int) -> Result:
        request = RequestBuilder("GetListMetaData").with_param("LIST_ID", list_id).build()
        return self._call(request)

    def create_query(
        self,
        query_name: str,
        parent_list_id: str | int,
        parent_folder_id: str | int | None,
        condition: Any,
        is_private: bool = True,
    ) -> str:
        """Create a query from ``condition`` and return the new list id."""
        request = (
            RequestBuilder("CreateQuery")
            .with_param("QUERY_NAME", query_name)
            .with_param("PARENT_LIST_ID", parent_list_id)
            .with_param("PARENT_FOLDER_ID", parent_folder_id)
            .with_visibility("VISIBILITY", is_private)
            .with_param("CRITERIA", {"TYPE": "editable", "EXPRESSION": condition})
            .build()
        )
        return self._call(request, ["ListId"]).text("ListId")

    def import_list(self, file_name: str, map_file_name: str) -> str:
        """Import a list from files in the FTP ``upload`` directory; returns the job id."""
        request = (
            RequestBuilder("ImportList")
            .with_param("MAP_FILE", map_file_name)
            .with_param("SOURCE_FILE", file_name)
            .build()
        )
        return self._call(request, ["JOB_ID"]).text("JOB_ID")

    def add_db_field(
        self,
        list_id: str | int,
        name: str,
        column_type: str | int,
        default: Any = None,
        key: Any = None,
    ) -> bool:
        builder = (
            RequestBuilder("AddListColumn")
            .with_param("LIST_ID", list_id)
            .with_param("COLUMN_NAME", name)
            .with_param("COLUMN_TYPE", column_type)
        )
        if default:
            builder = builder.with_param("DEFAULT", default)
        if key:
            builder = builder.with_param("KEY_COLUMN", key)
        self._call(builder.build())
        return True

    # --- Contacts ---

    def add_contact(
        self,
        list_id: str | int,
        update_if_found: bool,
        columns: Mapping[str, Any],
        contact_list_id: str | int | None = None,
        send_auto_reply: bool = False,
        allow_html: bool = False,
    ) -> str:
        """Add a contact and return its recipient id."""
        request = (
            RequestBuilder("AddRecipient")
            .with_param("LIST_ID", list_id)
            .with_param("CREATED_FROM", CREATED_MANUALLY)
            .with_flag("SEND_AUTOREPLY", send_auto_reply)
            .with_flag("UPDATE_IF_FOUND", update_if_found)
            .with_flag("ALLOW_HTML", allow_html)
            .with_param("CONTACT_LISTS", {"CONTACT_LIST_ID": contact_list_id} if contact_list_id else None)
            .with_columns(columns)
            .build()
        )
        return self._call(request, ["RecipientId"]).text("RecipientId")

    def get_contact(self, list_id: str | int, email: str) -> Result:
        request = (
            RequestBuilder("SelectRecipientData")
            .with_param("LIST_ID", list_id)
            .with_param("EMAIL", email)
            .build()
        )
        return self._call(request, ["RecipientId"])

    def double_opt_in_contact(self, list_id: str | int, email: str) -> str:
        request = (
            RequestBuilder("DoubleOptInRecipient")
            .with_param("LIST_ID", list_id)
            .with_columns({"EMAIL": email})
            .build()
        )
        return self._call(request, ["RecipientId"]).text("RecipientId")

    def update_contact(self, list_id: str | int, old_email: str, columns: Mapping[str, Any]) -> str:
        request = (
            RequestBuilder("UpdateRecipient")
            .with_param("LIST_ID", list_id)
            .with_param("OLD_EMAIL", old_email)
            .with_param("CREATED_FROM", CREATED_MANUALLY)
            .with_columns(columns)
            .build()
        )
        return self._call(request, ["RecipientId"]).text("RecipientId")

    def opt_out_contact(self, list_id: str | int, email: str, columns: Mapping[str, Any] | None = None) -> bool:
        request = (
            RequestBuilder("OptOutRecipient")
            .with_param("LIST_ID", list_id)
            .with_param("EMAIL", email)
            .with_columns({**(columns or {}), "EMAIL": email})
            .build()
        )
        self._call(request)
        return True

    def remove_contact(self, list_id: str | int, email: str, customer_id: Any) -> bool:
        """Remove a contact from a list.

        A contact that is not a member of the list counts as removed.
        """
        request = (
            RequestBuilder("RemoveRecipient")
            .with_param("LIST_ID", list_id)
            .with_param("EMAIL", email)
            .with_columns({"customerId": customer_id})
            .build()
        )
        envelope = self._send(request)
        if not is_success(result_of(envelope)):
            fault = fault_message(envelope)
            if fault != NOT_A_MEMBER_FAULT:
                raise ApiError(request.method, fault)
            logger.warning("%s was not a member of list %s", email, list_id)
        return True

    # --- Mailings ---

    def send_email(
        self,
        template_id: str | int,
        target_id: str | int,
        mailing_name: str,
        scheduled: datetime | int | float,
        optional_elements: Mapping[str, Any] | None = None,
        save_to_shared_folder: bool = False,
        suppression_lists: Sequence[str | int] | None = None,
    ) -> str:
        """Schedule a template-based mailing to ``target_id`` and return the mailing id.

        ``optional_elements`` may hold SUBJECT, FROM_NAME, FROM_ADDRESS,
        REPLY_TO or SUBSTITUTIONS and is copied into the request verbatim.
        """
        if not isinstance(scheduled, datetime):
            scheduled = datetime.fromtimestamp(scheduled)

        builder = (
            RequestBuilder("ScheduleMailing")
            .with_param("SEND_HTML", True)
            .with_param("SEND_TEXT", True)
            .with_param("TEMPLATE_ID", template_id)
            .with_param("LIST_ID", target_id)
            .with_param("MAILING_NAME", mailing_name)
            .with_visibility("VISIBILITY", not save_to_shared_folder)
            .with_param("SCHEDULED", scheduled.strftime(SCHEDULE_FORMAT))
            .with_params(optional_elements)
        )
        if suppression_lists:
            builder = builder.with_param(
                "SUPPRESSION_LISTS", {"SUPPRESSION_LIST_ID": list(suppression_lists)}
            )
        return self._call(builder.build(), ["MAILING_ID"]).text("MAILING_ID")

    def send_mailing(self, email: str, mailing_id: str | int, optional_keys: Mapping[str, Any] | None = None) -> bool:
        """Send a single transactional email through autoresponder ``mailing_id``."""
        request = (
            RequestBuilder("SendMailing")
            .with_param("MailingId", mailing_id)
            .with_param("RecipientEmail", email)
            .with_params(optional_keys)
            .build()
        )
        self._call(request)
        return True

    def get_mailing_rulesets(self, mailing_id: str | int) -> list[Any]:
        request = RequestBuilder("ListDCRulesetsForMailing").with_param("MAILING_ID", mailing_id).build()
        result = self._call(request, ["RULESET"], ["RULESET"])
        return result.get_list("RULESET")

    def get_ruleset_details(self, ruleset_id: str | int) -> Any:
        request = RequestBuilder("GetDCRuleset").with_param("RULESET_ID", ruleset_id).build()
        return self._call(request, ["RULESET"]).require("RULESET")

    def replace_ruleset(self, ruleset_id: str | int, content_areas: Any, rules: Any) -> str:
        request = (
            RequestBuilder("ReplaceDCRuleset")
            .with_param("RULESET_ID", ruleset_id)
            .with_param("CONTENT_AREAS", content_areas)
            .with_param("RULES", rules)
            .build()
        )
        return self._call(request, ["RULESET_ID"]).text("RULESET_ID")

    # --- Relational tables ---

    def import_table(self, file_name: str, map_file_name: str) -> str:
        """Import a table from files in the FTP ``upload`` directory; returns the job id."""
        request = (
            RequestBuilder("ImportTable")
            .with_param("MAP_FILE", map_file_name)
            .with_param("SOURCE_FILE", file_name)
            .build()
        )
        return self._call(request, ["JOB_ID"]).text("JOB_ID")

    def purge_table(self, table_name: str, is_private: bool = True) -> str:
        request = (
            RequestBuilder("PurgeTable")
            .with_param("TABLE_NAME", table_name)
            .with_visibility("TABLE_VISIBILITY", is_private)
            .build()
        )
        return self._call(request, ["JOB_ID"]).text("JOB_ID")

    def insert_update_relational_table(self, table_id: str | int, rows: Iterable[Mapping[str, Any]]) -> bool:
        """Insert rows, or update rows whose key matches. At most 100 rows per call."""
        request = (
            RequestBuilder("InsertUpdateRelationalTable")
            .with_param("TABLE_ID", table_id)
            .with_param("ROWS", _relational_rows(rows, "COLUMN"))
            .build()
        )
        self._call(request)
        return True

    def delete_relational_table_data(self, table_id: str | int, rows: Iterable[Mapping[str, Any]]) -> bool:
        request = (
            RequestBuilder("DeleteRelationalTableData")
            .with_param("TABLE_ID", table_id)
            .with_param("ROWS", _relational_rows(rows, "KEY_COLUMN"))
            .build()
        )
        self._call(request)
        return True

    def export_table(self, table_name: str) -> ExportJob:
        request = (
            RequestBuilder("ExportTable")
            .with_param("TABLE_NAME", table_name)
            .with_param("TABLE_VISIBILITY", 1)
            .with_param("EXPORT_FORMAT", "CSV")
            .build()
        )
        result = self._call(request, ["JOB_ID", "FILE_PATH"])
        return ExportJob(result.text("JOB_ID"), result.text("FILE_PATH"))

    def create_table(self, table_name: str, columns: Sequence[Mapping[str, Any]]) -> str:
        request = (
            RequestBuilder("CreateTable")
            .with_param("TABLE_NAME", table_name)
            .with_param("COLUMNS", {"COLUMN": list(columns)})
            .build()
        )
        return self._call(request, ["TABLE_ID"]).text("TABLE_ID")

    def join_table(
        self,
        table_id: str | int,
        list_id: str | int,
        map_fields: Mapping[str, str] | None = None,
    ) -> str:
        """Join a relational table to a database; ``map_fields`` maps table field to list field."""
        mapping = map_fields if map_fields is not None else DEFAULT_JOIN_MAP
        request = (
            RequestBuilder("JoinTable")
            .with_param("TABLE_ID", table_id)
            .with_param("TABLE_VISIBILITY", "SHARED")
            .with_param("LIST_ID", list_id)
            .with_param("LIST_VISIBILITY", "SHARED")
            .with_param(
                "MAP_FIELD",
                [{"TABLE_FIELD": table_field, "LIST_FIELD": list_field} for table_field, list_field in mapping.items()],
            )
            .build()
        )
        return self._call(request, ["JOB_ID"]).text("JOB_ID")

    def delete_table(self, table_name: str) -> str:
        request = (
            RequestBuilder("DeleteTable")
            .with_param("TABLE_NAME", table_name)
            .with_param("TABLE_VISIBILITY", 1)
            .build()
        )
        return self._call(request, ["JOB_ID"]).text("JOB_ID")

    # --- Data jobs ---

    def get_job_status(self, job_id: str | int) -> Result:
        request = RequestBuilder("GetJobStatus").with_param("JOB_ID", job_id).build()
        return self._call(request, ["JOB_STATUS"])

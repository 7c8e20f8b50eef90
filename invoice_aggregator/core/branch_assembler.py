import logging
from typing import Dict, List

from invoice_aggregator.core.concurrency import gather_or_cancel
from invoice_aggregator.core.exceptions import DataIntegrityError
from invoice_aggregator.db.store import InvoiceDataStore
from invoice_aggregator.schemas.invoice_data import Application, Branch

logger = logging.getLogger(__name__)


def group_by_branch(applications: List[Application]) -> Dict[int, List[Application]]:
    """Group applications by branch id; dict order is first-seen branch order."""
    groups: Dict[int, List[Application]] = {}
    for application in applications:
        groups.setdefault(application.branch_id, []).append(application)
    return groups


class BranchAssembler:
    def __init__(self, store: InvoiceDataStore):
        self.store = store

    async def assemble(self, applications: List[Application]) -> List[Branch]:
        groups = group_by_branch(applications)
        return await gather_or_cancel(
            self._load_branch(branch_id, members) for branch_id, members in groups.items()
        )

    async def _load_branch(self, branch_id: int, applications: List[Application]) -> Branch:
        record = await self.store.fetch_branch(branch_id)
        if record is None:
            application_ids = [application.id for application in applications]
            logger.error(f"Branch {branch_id} referenced by applications {application_ids} does not exist")
            raise DataIntegrityError(
                f"Branch {branch_id} referenced by {len(application_ids)} application(s) does not exist",
                branch_id=branch_id,
                application_ids=application_ids,
            )
        # The branch holds the same Application objects, not copies.
        return Branch(id=record.id, name=record.name, applications=applications)

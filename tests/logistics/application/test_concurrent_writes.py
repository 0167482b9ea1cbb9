"""Two writers holding the same aggregate version: the first one wins."""

import pytest
from protean.exceptions import ExpectedVersionError
from protean.utils.globals import current_domain

from logistics.approval.approval import ApprovalRecord
from logistics.rider.rider import Rider


class TestRiderWrites:
    def test_second_stale_write_is_refused(self, network):
        hospital_id = network.hospital()
        rider_id = network.rider([hospital_id])
        riders = current_domain.repository_for(Rider)

        first = riders.get(rider_id)
        second = riders.get(rider_id)
        first.update_location(12.97, 77.59)
        riders.add(first)

        second.update_location(13.01, 77.60)
        with pytest.raises(ExpectedVersionError):
            riders.add(second)

        assert riders.get(rider_id).current_location.latitude == 12.97

    def test_reloading_after_a_write_succeeds(self, network):
        hospital_id = network.hospital()
        rider_id = network.rider([hospital_id])
        riders = current_domain.repository_for(Rider)

        first = riders.get(rider_id)
        first.update_location(12.97, 77.59)
        riders.add(first)

        fresh = riders.get(rider_id)
        fresh.update_location(13.01, 77.60)
        riders.add(fresh)

        assert riders.get(rider_id).current_location.latitude == 13.01


class TestApprovalWrites:
    def test_conflicting_decisions_keep_the_first(self, network):
        hospital_id = network.hospital()
        center_id = network.center([hospital_id], approve=False)
        records = current_domain.repository_for(ApprovalRecord)

        approving = records.get(center_id)
        rejecting = records.get(center_id)
        approving.approve_by_hospital(hospital_id, approver_id="admin-1")
        records.add(approving)

        rejecting.reject("hospital", "Paperwork missing", approver_id="admin-2", hospital_id=hospital_id)
        with pytest.raises(ExpectedVersionError):
            records.add(rejecting)

        assert records.get(center_id).status_for_hospital(hospital_id) == "approved"

"""Expiry sweep for governance proposals; meant to be run by cron or a job runner."""

from django.core.management.base import BaseCommand, CommandError

from core.errors import StoreUnavailable
from core.services import GovernanceService


class Command(BaseCommand):
	help = "Mark active proposals whose voting window has ended as completed"

	def handle(self, *args, **options):
		try:
			closed = GovernanceService().close_expired_proposals()
		except StoreUnavailable as e:
			raise CommandError(str(e)) from e
		for proposal in closed:
			self.stdout.write(f"completed #{proposal.pk} {proposal.title}")
		self.stdout.write(self.style.SUCCESS(f"Closed {len(closed)} expired proposals"))

import unittest
from unittest import mock

from school_ops import scheduler as scheduler_module
from school_ops.errors import ValidationFailed


class SchedulerTests(unittest.TestCase):
    def test_parse_hhmm_falls_back_to_default(self):
        self.assertEqual(scheduler_module._parse_hhmm('07:45'), (7, 45))
        self.assertEqual(scheduler_module._parse_hhmm('25:00'), (18, 0))
        self.assertEqual(scheduler_module._parse_hhmm('later'), (18, 0))

    def test_start_registers_both_jobs_once(self):
        fake = mock.Mock()
        fake.running = False
        with mock.patch.object(scheduler_module, 'scheduler', fake):
            scheduler_module.start_scheduler()

        job_ids = [call.kwargs['id'] for call in fake.add_job.call_args_list]
        self.assertEqual(job_ids, ['create_tomorrow_classes', 'trigger_follow_up_messages'])
        self.assertTrue(all(call.kwargs['replace_existing'] for call in fake.add_job.call_args_list))
        fake.start.assert_called_once()

    def test_jobs_close_their_session(self):
        session = mock.Mock()
        with mock.patch.object(scheduler_module, 'SessionLocal', return_value=session), mock.patch.object(
            scheduler_module, 'trigger_next_messages', return_value={'processed': 0}
        ) as trigger:
            scheduler_module.trigger_follow_up_messages_job()

        trigger.assert_called_once_with(session)
        session.close.assert_called_once()

    def test_follow_up_job_skips_when_webhook_missing(self):
        session = mock.Mock()
        missing = ValidationFailed('Webhook URL not configured', code='WEBHOOK_NOT_CONFIGURED')
        with mock.patch.object(scheduler_module, 'SessionLocal', return_value=session), mock.patch.object(
            scheduler_module, 'trigger_next_messages', side_effect=missing
        ):
            scheduler_module.trigger_follow_up_messages_job()

        session.close.assert_called_once()

    def test_failed_job_still_closes_session(self):
        session = mock.Mock()
        with mock.patch.object(scheduler_module, 'SessionLocal', return_value=session), mock.patch.object(
            scheduler_module, 'create_classes_for_tomorrow', side_effect=RuntimeError('db down')
        ):
            with self.assertRaises(RuntimeError):
                scheduler_module.create_tomorrow_classes_job()
        session.close.assert_called_once()


if __name__ == '__main__':
    unittest.main()

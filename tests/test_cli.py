"""Tests for the flashround console client."""

import unittest
from unittest.mock import MagicMock, patch

import requests

from cli.__main__ import parse_args
from cli.console import ConsoleUI


def question_data(phase='await_answer'):
    return {
        'state': {'phase': phase, 'questions_asked': 1, 'round_size': 3, 'score': 0, 'streak': 0},
        'question': {'topic': 'Animals', 'prompt': {'target_text': 'perro', 'hint': ''},
                     'options': ['cat', 'dog', 'bird']},
        'summary': None
    }


class TestArgs(unittest.TestCase):

    def test_defaults(self):
        args = parse_args([])
        self.assertEqual(args.server, 'http://localhost:8000')
        self.assertEqual(args.user, 'default')
        self.assertIsNone(args.topic)
        self.assertIsNone(args.size)

    def test_presets(self):
        args = parse_args(['--topic', 'Colors', '--size', '5'])
        self.assertEqual(args.topic, 'Colors')
        self.assertEqual(args.size, 5)


class TestConsoleUI(unittest.TestCase):

    def setUp(self):
        self.client = MagicMock()
        self.ui = ConsoleUI(self.client)

    def test_presets_applied(self):
        self.ui.apply_presets('Colors', 5)
        self.client.set_topic.assert_called_once_with('Colors')
        self.client.set_round_size.assert_called_once_with(5)

    def test_unknown_topic_preset(self):
        self.client.set_topic.side_effect = requests.HTTPError('404')
        with patch('builtins.print'):
            self.ui.apply_presets('Planets', None)
        self.client.set_round_size.assert_not_called()

    @patch('builtins.print')
    def test_play_round(self, _print):
        self.client.submit_answer.return_value = {
            'accepted': True, 'ok': True, 'points': 100, 'streak': 1,
            'correct_term': {'source_text': 'dog', 'target_text': 'perro'}
        }
        self.client.advance.return_value = question_data('finished')
        with patch('builtins.input', side_effect=['9', '2', '']):
            data = self.ui.play_round(question_data())
        self.client.submit_answer.assert_called_once_with(1)
        self.assertEqual(data['state']['phase'], 'finished')

    @patch('builtins.print')
    def test_info_commands(self, _print):
        self.client.get_hardest.return_value = {'topic': 'Animals', 'terms': [
            {'source_text': 'cat', 'target_text': 'gato', 'topic': 'Animals', 'difficulty': 2.5}
        ]}
        self.client.get_topic_stats.return_value = {
            'plays': 2, 'total_questions': 6, 'total_correct': 5, 'best_score': 345,
            'best_streak': 3, 'best_accuracy_pct': 100
        }
        self.client.get_users.return_value = {'users': ['alice']}
        state = {'selected_topic': 'Animals'}

        self.assertIsNone(self.ui.dispatch('hardest', '5', state))
        self.client.get_hardest.assert_called_once_with(5)
        self.assertIsNone(self.ui.dispatch('stats', '', state))
        self.client.get_topic_stats.assert_called_once_with('Animals')
        self.assertIsNone(self.ui.dispatch('users', '', state))
        self.client.get_users.assert_called_once()

    @patch('builtins.print')
    def test_stats_without_topic_uses_all(self, _print):
        self.client.get_topic_stats.return_value = {
            'plays': 0, 'total_questions': 0, 'total_correct': 0, 'best_score': 0,
            'best_streak': 0, 'best_accuracy_pct': 0
        }
        self.ui.dispatch('stats', '', {'selected_topic': None})
        self.client.get_topic_stats.assert_called_once_with('All')

    @patch('builtins.print')
    def test_restart_and_summary(self, _print):
        self.client.get_summary.return_value = {
            'topic': 'Animals', 'score': 100, 'correct_count': 1, 'round_size': 3,
            'accuracy_pct': 33, 'best_streak': 1, 'hardest': [],
            'record': {'best_score': 100, 'best_streak': 1, 'best_accuracy_pct': 33, 'plays': 1}
        }
        self.assertIsNone(self.ui.dispatch('restart', '', {}))
        self.client.restart.assert_called_once()
        self.assertIsNone(self.ui.dispatch('summary', '', {}))
        self.client.get_summary.assert_called_once()

    def test_round_commands_return_state(self):
        self.client.start_or_advance.return_value = question_data()
        self.client.enter_review.return_value = question_data()
        self.assertEqual(self.ui.dispatch('', '', {}), question_data())
        self.assertEqual(self.ui.dispatch('review', '', {}), question_data())

    def test_exit_during_round(self):
        with patch('builtins.input', side_effect=['exit']), patch('builtins.print'):
            with self.assertRaises(KeyboardInterrupt):
                self.ui.play_round(question_data())
        self.client.submit_answer.assert_not_called()


if __name__ == '__main__':
    unittest.main()

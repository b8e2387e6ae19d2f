"""Console UI for flashround."""

import requests

from cli.api_client import FlashroundAPIClient


class ConsoleUI:
    """Console user interface for flashround rounds."""

    def __init__(self, client: FlashroundAPIClient):
        self.client = client

    def print_question(self, data: dict):
        """Print the prompt and numbered options."""
        state = data['state']
        question = data['question']
        prompt = question['prompt']
        print('\n' + '=' * 50)
        print(f"Question {state['questions_asked']}/{state['round_size']} | "
              f"Score {state['score']} | Streak {state['streak']}")
        print('=' * 50)
        hint = f"  {prompt['hint']}" if prompt.get('hint') else ''
        print(f"\n  >>> {prompt['target_text']}{hint}\n")
        for i, label in enumerate(question['options'], start=1):
            print(f"  {i}. {label}")

    def print_outcome(self, result: dict):
        term = result['correct_term']
        if result['ok']:
            print(f"\nCorrect! +{result['points']} (streak {result['streak']})")
        else:
            print(f"\nWrong. {term['target_text']} = {term['source_text']}")

    def print_summary(self, summary: dict):
        record = summary['record']
        print('\n' + '=' * 50)
        print(f"ROUND SUMMARY ({summary['topic']})")
        print('=' * 50)
        print(f"Score: {summary['score']}")
        print(f"Correct: {summary['correct_count']}/{summary['round_size']} ({summary['accuracy_pct']}%)")
        print(f"Best streak: {summary['best_streak']}")
        print(f"\nBest ever: score {record['best_score']}, streak {record['best_streak']}, "
              f"accuracy {record['best_accuracy_pct']}% over {record['plays']} plays")
        if summary['hardest']:
            print('\nHardest terms:')
            for h in summary['hardest']:
                print(f"  {h['target_text']} = {h['source_text']} (difficulty {h['difficulty']:.1f})")
        print('=' * 50)

    def print_hardest(self, data: dict):
        print(f"\nHardest terms ({data['topic']}):")
        for h in data['terms']:
            print(f"  {h['target_text']} = {h['source_text']} (difficulty {h['difficulty']:.1f})")

    def print_topic_stats(self, topic: str, stats: dict):
        print(f"\n{topic}: {stats['plays']} plays, "
              f"{stats['total_correct']}/{stats['total_questions']} correct, "
              f"best score {stats['best_score']}, best streak {stats['best_streak']}, "
              f"best accuracy {stats['best_accuracy_pct']}%")

    def print_menu(self, state: dict):
        print(f"\nTopic: {state['selected_topic'] or 'All'} | Round size: {state['round_size']} | "
              f"Adaptive: {'on' if state['adaptive_enabled'] else 'off'}")
        print('Commands: [enter] start, "topic NAME", "size N", "adaptive", "review", "restart",\n'
              '          "hardest [N]", "stats [TOPIC]", "summary", "users", "exit"')

    def play_round(self, data: dict) -> dict:
        """Answer questions until the round finishes. Returns the final state response."""
        while data['state']['phase'] == 'await_answer':
            self.print_question(data)
            option_count = len(data['question']['options'])
            choice = None
            while choice is None:
                user_input = input('==> ').strip().lower()
                if user_input == 'exit':
                    raise KeyboardInterrupt
                if user_input.isdigit() and 1 <= int(user_input) <= option_count:
                    choice = int(user_input) - 1
                else:
                    print(f"Enter a number from 1 to {option_count}")
            result = self.client.submit_answer(choice)
            if result['accepted']:
                self.print_outcome(result)
            input('[enter] to continue')
            data = self.client.advance()
        return data

    def apply_presets(self, topic: str | None, round_size: int | None):
        """Select topic and round size given on the command line."""
        if topic:
            try:
                self.client.set_topic(topic)
            except requests.HTTPError:
                print(f"Unknown topic {topic!r}, keeping the current one")
        if round_size is not None:
            self.client.set_round_size(round_size)

    def run(self, topic: str | None = None, round_size: int | None = None):
        """Run the main application loop."""
        try:
            health = self.client.health_check()
            print(f"Connected to flashround server ({health['service']})")
        except requests.RequestException:
            print(f"Error: Cannot connect to server at {self.client.base_url}")
            print("Make sure the server is running: python run_server.py")
            return

        topics = self.client.get_topics()
        print(f"Topics: {', '.join(topics['topics'])}")
        self.apply_presets(topic, round_size)

        while True:
            data = self.client.get_state()
            self.print_menu(data['state'])
            user_input = input('==> ').strip()
            command, _, arg = user_input.partition(' ')
            command = command.lower()
            if command == 'exit':
                print('Goodbye!')
                return
            try:
                data = self.dispatch(command, arg.strip(), data['state'])
                if data is None:
                    continue
                data = self.play_round(data)
            except requests.HTTPError as e:
                print(f"Error: {e.response.json().get('detail', e)}")
                continue

            if data['summary'] and data['state']['phase'] == 'finished':
                self.print_summary(data['summary'])

    def dispatch(self, command: str, arg: str, state: dict) -> dict | None:
        """Run one menu command. Returns a state response when a round starts, else None."""
        if command == 'topic':
            self.client.set_topic(arg or None)
        elif command == 'size' and arg.isdigit():
            self.client.set_round_size(int(arg))
        elif command == 'adaptive':
            self.client.toggle_adaptive()
        elif command == 'restart':
            self.client.restart()
            print('Round abandoned')
        elif command == 'hardest':
            self.print_hardest(self.client.get_hardest(int(arg) if arg.isdigit() else 3))
        elif command == 'stats':
            topic = arg or state['selected_topic'] or 'All'
            self.print_topic_stats(topic, self.client.get_topic_stats(topic))
        elif command == 'summary':
            self.print_summary(self.client.get_summary())
        elif command == 'users':
            users = self.client.get_users()['users']
            print(f"Users: {', '.join(users) if users else '(none)'}")
        elif command == 'review':
            return self.client.enter_review()
        elif command == '':
            return self.client.start_or_advance()
        else:
            print(f"Unknown command: {command} {arg}".rstrip())
        return None

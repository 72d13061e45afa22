#!/usr/bin/env python3
"""Main entry point for Wingfoil Analyser application."""

import argparse
import json
import logging
import sys
from pathlib import Path
from typing import List, Optional

from config import settings
from parsers.file_parser import FileParser, is_wingfoil_sport
from analyzers.session_analyzer import SessionAnalyzer, session_id_for
from models.session import ProgressStats, Session
from models.spot import Spot
from storage.session_store import SessionStore
from utils.formatting import format_duration, format_distance, format_speed, format_heart_rate

ANALYSIS_SUFFIX = '_analysis.json'


def setup_logging(verbose: bool = False):
    """Set up logging configuration.

    Args:
        verbose: Enable verbose logging
    """
    level = logging.DEBUG if verbose else getattr(logging, settings.LOG_LEVEL.upper(), logging.INFO)
    logging.basicConfig(
        level=level,
        format=settings.LOG_FORMAT,
        handlers=[
            logging.StreamHandler(sys.stdout),
            logging.FileHandler('wingfoil_analyser.log')
        ]
    )


def add_detection_arguments(parser: argparse.ArgumentParser):
    """Add run detection overrides to a sub-command parser."""
    parser.add_argument(
        '--min-speed', type=float, help='Minimum riding speed (km/h)'
    )
    parser.add_argument(
        '--min-duration', type=float, help='Minimum run duration (s)'
    )
    parser.add_argument(
        '--min-stop', type=float, help='Minimum stop duration between runs (s)'
    )
    parser.add_argument(
        '--smoothing', type=int, help='Speed smoothing window (samples)'
    )


def parse_args(argv: Optional[List[str]] = None) -> argparse.Namespace:
    """Parse command line arguments."""
    parser = argparse.ArgumentParser(
        description='Detect runs and jibes in wingfoil session recordings',
        formatter_class=argparse.RawTextHelpFormatter,
        epilog=(
            'Examples:\n'
            '  %(prog)s analyze --file path/to/session.fit --jibes\n'
            '  %(prog)s batch --directory data/ --save\n'
            '  %(prog)s reanalyze --min-speed 14\n'
            '  %(prog)s progress\n'
            '  %(prog)s spots\n'
            '  %(prog)s delete --session-id session_12345\n'
            '  %(prog)s config --set min_speed_threshold=14'
        )
    )

    parser.add_argument(
        '--verbose', '-v',
        action='store_true',
        help='Enable verbose logging'
    )
    parser.add_argument(
        '--sessions-dir', type=str, default=str(settings.SESSIONS_DIR),
        help='Directory of stored sessions'
    )
    parser.add_argument(
        '--config-file', type=str, default=None,
        help='Detection configuration file (default: config/detection.json)'
    )

    subparsers = parser.add_subparsers(dest='command', help='Available commands')

    # Analyze command
    analyze_parser = subparsers.add_parser('analyze', help='Analyze a single session recording')
    analyze_parser.add_argument(
        '--file', '-f', required=True, type=str,
        help='Path to recording (FIT or Strava streams JSON)'
    )
    analyze_parser.add_argument(
        '--jibes', action='store_true', help='Detect jibes from the GPS track'
    )
    analyze_parser.add_argument(
        '--save', action='store_true', help='Store the session for progress tracking'
    )
    analyze_parser.add_argument(
        '--output-dir', type=str, help='Write the analysis as JSON into this directory'
    )
    add_detection_arguments(analyze_parser)

    # Batch command
    batch_parser = subparsers.add_parser('batch', help='Analyze all recordings in a directory')
    batch_parser.add_argument(
        '--directory', '-d', required=True, type=str, help='Directory containing recordings'
    )
    batch_parser.add_argument(
        '--jibes', action='store_true', help='Detect jibes from the GPS track'
    )
    batch_parser.add_argument(
        '--save', action='store_true', help='Store the sessions for progress tracking'
    )
    batch_parser.add_argument(
        '--output-dir', type=str, help='Write the analyses as JSON into this directory'
    )
    batch_parser.add_argument(
        '--all-sports', action='store_true',
        help='Also analyze activities whose sport type is not a wingfoil candidate'
    )
    batch_parser.add_argument(
        '--force', action='store_true',
        help='With --save, re-analyze recordings whose session is already stored'
    )
    add_detection_arguments(batch_parser)

    # Reanalyze command
    reanalyze_parser = subparsers.add_parser(
        'reanalyze', help='Re-detect runs of stored sessions with the current configuration'
    )
    add_detection_arguments(reanalyze_parser)

    # Progress command
    subparsers.add_parser('progress', help='Show progress across stored sessions')

    # Spots command
    subparsers.add_parser('spots', help='Group stored sessions into riding spots')

    # Delete command
    delete_parser = subparsers.add_parser('delete', help='Remove a stored session')
    delete_parser.add_argument(
        '--session-id', required=True, type=str, help='Id of the session to remove'
    )

    # Config command
    config_parser = subparsers.add_parser('config', help='Manage run detection configuration')
    config_parser.add_argument(
        '--show', action='store_true', help='Show current configuration'
    )
    config_parser.add_argument(
        '--set', action='append', metavar='KEY=VALUE', default=[],
        help='Persist a detection parameter, e.g. min_speed_threshold=14'
    )

    return parser.parse_args(argv)


class WingfoilAnalyser:
    """Main application class."""

    def __init__(self, sessions_dir: Optional[Path] = None,
                 config_file: Optional[Path] = None):
        """Initialize the analyser."""
        self.settings = settings
        self.config_file = config_file
        self.file_parser = FileParser()
        self.session_analyzer = SessionAnalyzer(settings.load_detection_config(config_file))
        self.session_store = SessionStore(sessions_dir)

    def _apply_detection_overrides(self, args: argparse.Namespace):
        """Apply run detection overrides from arguments."""
        self.session_analyzer.config = self.session_analyzer.config.with_overrides(
            min_speed_threshold=getattr(args, 'min_speed', None),
            min_run_duration=getattr(args, 'min_duration', None),
            min_stop_duration=getattr(args, 'min_stop', None),
            speed_smoothing_window=getattr(args, 'smoothing', None),
        )

    def analyze_file(self, file_path: Path, args: argparse.Namespace,
                     skip_existing: bool = False) -> Optional[dict]:
        """Analyze a single recording.

        Args:
            file_path: Path to the recording
            args: Command line arguments including detection overrides
            skip_existing: Skip recordings whose session is already stored

        Returns:
            Analysis results, or None when the recording contains no runs or
            was skipped
        """
        logging.info(f"Analyzing file: {file_path}")
        self._apply_detection_overrides(args)

        activity = self.file_parser.parse_file(file_path)
        if not activity:
            raise ValueError(f"Failed to parse file: {file_path}")

        session_id = session_id_for(activity.metadata.activity_id)
        if skip_existing and self.session_store.has_session(session_id):
            logging.info(f"Skipping {file_path.name}: {session_id} already stored")
            return None

        session = self.session_analyzer.analyze_activity(activity)
        if session is None:
            return None

        analysis = self.session_analyzer.analyze_session(
            session, include_jibes=getattr(args, 'jibes', False)
        )
        return {'activity': activity, 'session': session, 'analysis': analysis, 'file_path': file_path}

    def batch_analyze_directory(self, directory: Path, args: argparse.Namespace) -> List[dict]:
        """Analyze all recordings in a directory.

        Args:
            directory: Directory containing recordings
            args: Command line arguments including detection overrides

        Returns:
            List of analysis results
        """
        logging.info(f"Analyzing directory: {directory}")
        results = []
        supported_extensions = set(self.settings.SUPPORTED_FORMATS)
        sessions_dir = self.session_store.directory.resolve()
        skip_existing = getattr(args, 'save', False) and not getattr(args, 'force', False)

        for file_path in sorted(directory.rglob('*')):
            if file_path.suffix.lower() not in supported_extensions:
                continue
            # Stored sessions and analysis outputs are not recordings
            if sessions_dir in file_path.resolve().parents or file_path.name.endswith(ANALYSIS_SUFFIX):
                continue
            try:
                result = self.analyze_file(file_path, args, skip_existing=skip_existing)
            except Exception as e:
                logging.error(f"Error analyzing {file_path}: {e}")
                continue

            if result is None:
                continue
            sport_type = result['activity'].metadata.sport_type
            if not getattr(args, 'all_sports', False) and not is_wingfoil_sport(sport_type):
                logging.info(f"Skipping {file_path.name}: sport type {sport_type}")
                continue
            results.append(result)

        return results

    def reanalyze_sessions(self, args: argparse.Namespace) -> List[Session]:
        """Re-detect the runs of all stored sessions and store the results.

        Args:
            args: Command line arguments including detection overrides

        Returns:
            List of updated sessions
        """
        logging.info("Re-analyzing all stored sessions")
        self._apply_detection_overrides(args)

        updated = []
        for session in self.session_store.load_sessions():
            if not session.has_raw_data:
                logging.warning(f"Skipping {session.session_id}: no raw data stored")
                continue
            session = self.session_analyzer.reprocess_session(session)
            self.session_store.save_session(session)
            updated.append(session)

        logging.info(f"Re-analyzed {len(updated)} sessions")
        return updated

    def calculate_progress(self) -> ProgressStats:
        """Progress statistics of all stored sessions."""
        return self.session_analyzer.calculate_progress(self.session_store.load_sessions())

    def calculate_spots(self) -> List[Spot]:
        """Riding spots of all stored sessions."""
        return self.session_analyzer.calculate_spots(self.session_store.load_sessions())

    def delete_session(self, session_id: str) -> bool:
        """Remove a stored session.

        Returns:
            True if the session existed
        """
        if self.session_store.delete_session(session_id):
            return True
        logging.warning(f"Session not found: {session_id}")
        return False

    def show_config(self):
        """Display current configuration."""
        print("Current Configuration:")
        print("-" * 30)
        config_dict = dict(self.session_analyzer.config.to_dict())
        config_dict.update({
            'CONFIG_FILE': self.config_file or self.settings.DETECTION_CONFIG_FILE,
            'SESSIONS_DIR': self.session_store.directory,
            'DATA_DIR': self.settings.DATA_DIR,
        })
        for key, value in config_dict.items():
            print(f"{key}: {value}")

    def set_config(self, assignments: List[str]):
        """Persist detection parameter assignments of the form KEY=VALUE."""
        overrides = {}
        for assignment in assignments:
            overrides.update(settings.parse_config_assignment(assignment))
        config = self.session_analyzer.config.with_overrides(**overrides)
        settings.save_detection_config(config, self.config_file)
        self.session_analyzer.config = config

    def save_outputs(self, results: List[dict], args: argparse.Namespace):
        """Store sessions and write analysis files based on arguments.

        Args:
            results: Analysis results
            args: Command line arguments
        """
        if getattr(args, 'save', False):
            for result in results:
                path = self.session_store.save_session(result['session'])
                logging.info(f"Session saved to: {path}")

        output_dir = getattr(args, 'output_dir', None)
        if output_dir:
            output_path = Path(output_dir)
            output_path.mkdir(parents=True, exist_ok=True)
            for result in results:
                session = result['session']
                output_file = output_path / f"{session.session_id}{ANALYSIS_SUFFIX}"
                with open(output_file, 'w', encoding='utf-8') as f:
                    json.dump(result['analysis'], f, indent=2, default=str)
                logging.info(f"Analysis saved to: {output_file}")


def print_session_summary(result: dict):
    """Print a human-readable summary of a session analysis."""
    session = result['session']
    stats = session.stats

    print("\n" + "=" * 50)
    print(f"SESSION: {session.name}")
    print("=" * 50)
    print(f"Date: {session.date.isoformat()}")
    print(f"Duration: {format_duration(session.total_duration)}")
    print(f"Distance: {format_distance(session.total_distance)}")
    print(f"\nRuns: {stats.number_of_runs}")
    print(f"Riding time: {format_duration(stats.total_riding_time)}")
    print(f"Riding distance: {format_distance(stats.total_riding_distance)}")
    print(f"Longest run: {format_duration(stats.longest_run_duration)}")
    print(f"Best average speed: {format_speed(stats.best_average_speed)}")
    print(f"Best max speed: {format_speed(stats.best_max_speed)}")
    if stats.average_heartrate is not None:
        print(f"Average heart rate: {format_heart_rate(stats.average_heartrate)}")
    if stats.max_heartrate is not None:
        print(f"Max heart rate: {format_heart_rate(stats.max_heartrate)}")

    print("\nRun  Start     Duration  Distance  Avg speed    Max speed")
    for run in session.runs:
        print(
            f"{run.run_id:<4} {format_duration(run.start_time):<9} "
            f"{format_duration(run.duration):<9} {format_distance(run.distance):<9} "
            f"{format_speed(run.average_speed):<12} {format_speed(run.max_speed)}"
        )

    jibe_summary = result['analysis'].get('jibe_summary')
    if jibe_summary is not None:
        counts = jibe_summary['by_size']
        print(
            f"\nJibes: {jibe_summary['total']} "
            f"(small {counts['small']}, medium {counts['medium']}, large {counts['large']})"
        )

    print("=" * 50)


def print_progress(progress: ProgressStats):
    """Print a human-readable summary of progress statistics."""
    trend = progress.recent_trend

    print("\n" + "=" * 50)
    print("PROGRESS")
    print("=" * 50)
    print(f"Sessions: {progress.total_sessions}")
    print(f"Runs: {progress.total_runs} ({progress.average_runs_per_session:.1f} per session)")
    print(f"Riding time: {format_duration(progress.total_riding_time)}")
    print(f"Riding distance: {format_distance(progress.total_riding_distance)}")
    print(f"Average run: {format_duration(progress.average_run_duration)}, "
          f"{format_distance(progress.average_run_distance)}")
    print(f"Best run: {format_duration(progress.best_run_duration)}, "
          f"{format_distance(progress.best_run_distance)}")
    print(f"Best max speed: {format_speed(progress.best_max_speed)}")
    print(f"\nRecent trend: run duration {trend.run_duration:+.1f}%, "
          f"run distance {trend.run_distance:+.1f}%, "
          f"runs per session {trend.runs_per_session:+.1f}%")
    print("=" * 50)


def print_spots(spots: List[Spot]):
    """Print the riding spots, most visited first."""
    print("\n" + "=" * 50)
    print("SPOTS")
    print("=" * 50)
    if not spots:
        print("No sessions with GPS positions stored")
    for spot in spots:
        lat, lng = spot.coordinates
        print(f"{spot.name} ({lat:.3f}, {lng:.3f})")
        print(f"  Sessions: {spot.sessions_count}, last visit {spot.last_visit.date().isoformat()}")
        print(f"  Riding time: {format_duration(spot.total_riding_time)}")
        print(f"  Best max speed: {format_speed(spot.best_max_speed)}")
        print(f"  Runs per session: {spot.average_runs_per_session:.1f}")
    print("=" * 50)


def main(argv: Optional[List[str]] = None):
    """Main application entry point."""
    args = parse_args(argv)
    setup_logging(args.verbose)

    if not args.command:
        logging.error("Please specify a command. Use --help for the list of commands.")
        sys.exit(1)

    try:
        analyser = WingfoilAnalyser(
            sessions_dir=Path(args.sessions_dir),
            config_file=Path(args.config_file) if args.config_file else None
        )
        results = []

        if args.command == 'analyze':
            file_path = Path(args.file)
            if not file_path.exists():
                logging.error(f"File not found: {file_path}")
                sys.exit(1)
            result = analyser.analyze_file(file_path, args)
            if result is None:
                logging.warning(f"No runs detected in {file_path}")
            else:
                results = [result]

        elif args.command == 'batch':
            directory = Path(args.directory)
            if not directory.exists():
                logging.error(f"Directory not found: {directory}")
                sys.exit(1)
            results = analyser.batch_analyze_directory(directory, args)

        elif args.command == 'reanalyze':
            sessions = analyser.reanalyze_sessions(args)
            print_progress(analyser.session_analyzer.calculate_progress(sessions))

        elif args.command == 'progress':
            print_progress(analyser.calculate_progress())

        elif args.command == 'spots':
            print_spots(analyser.calculate_spots())

        elif args.command == 'delete':
            if not analyser.delete_session(args.session_id):
                sys.exit(1)

        elif args.command == 'config':
            if args.set:
                analyser.set_config(args.set)
            analyser.show_config()

        if results:
            analyser.save_outputs(results, args)
            for result in results:
                print_session_summary(result)
            logging.info(f"Analysis complete! Processed {len(results)} session(s)")

        if args.command == 'batch' and len(results) > 1:
            print_progress(
                analyser.session_analyzer.calculate_progress([r['session'] for r in results])
            )

    except Exception as e:
        logging.error(f"Error: {e}")
        if args.verbose:
            logging.exception("Full traceback:")
        sys.exit(1)


if __name__ == '__main__':
    main()

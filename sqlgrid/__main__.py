"""Entry point for sqlgrid."""

import sys


def main():
    """Main entry point with argument handling."""
    args = sys.argv[1:]

    if not args or args[0].lower() in ("--help", "-h"):
        print("SQLGrid - Editable result grid for SQLite")
        print()
        print("Usage: sqlgrid [options] DATABASE [SQL]")
        print()
        print("Options:")
        print("  --settings-db PATH   Store settings and the save log in PATH")
        print("  --help, -h           Show this help message")
        print()
        print("Opens DATABASE and, when SQL is given, runs it immediately.")
        sys.exit(0 if args else 1)

    if args[0] == "--settings-db":
        if len(args) < 2:
            print("--settings-db requires a path")
            sys.exit(1)
        from sqlgrid.database import Database, set_db
        set_db(Database(args[1]))
        args = args[2:]
        if not args:
            print("Missing DATABASE argument")
            sys.exit(1)

    db_path = args[0]
    sql = " ".join(args[1:])

    from PyQt6.QtWidgets import QApplication
    from sqlgrid.qt.main_window import MainWindow

    app = QApplication(sys.argv[:1])
    app.setApplicationName("SQLGrid")
    window = MainWindow(db_path, sql)
    window.resize(1200, 750)
    window.show()
    sys.exit(app.exec())


if __name__ == "__main__":
    main()

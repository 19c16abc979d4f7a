from __future__ import annotations

from PySide6 import QtCore, QtGui, QtWidgets
from PySide6.QtCharts import QBarCategoryAxis, QBarSeries, QBarSet, QChart, QChartView, QPieSeries, QValueAxis

from .attendance import AttendanceService
from .constants import APP_NAME, ENTITY_LABELS, ENTITY_TYPES, MANAGER, PARENT, STUDENT, TEACHER
from .errors import SchoolDeskError, ValidationError
from .exams import ExamService
from .logger import ErrorLogger
from .qt_bank import ExamsPage, QuestionBankPage
from .qt_pages import AttendancePage, CatalogPage, DetailDialog, EntityPage
from .qt_settings import SettingsPage
from .settings_store import Settings, SettingsStore
from .storage import CLASS, LEVEL, SUBJECT, MemoryStore

PAGES = [
    ("dashboard", "Dashboard"),
    (STUDENT, "Students"),
    (TEACHER, "Teachers"),
    (PARENT, "Parents"),
    (MANAGER, "Managers"),
    (CLASS, "Classes"),
    (LEVEL, "Levels"),
    (SUBJECT, "Subjects"),
    ("attendance", "Attendance"),
    ("bank", "Question Bank"),
    ("exams", "Exams"),
    ("settings", "Settings"),
]


# Dark slate surfaces with a teal accent.
THEME = {
    "bg": "#0c0e12",
    "panel": "#0b0d11",
    "surface": "#0f1218",
    "input": "#10131a",
    "raised": "#1a1f2b",
    "hover": "#131722",
    "line": "#222733",
    "line_strong": "#2a3243",
    "grid": "#1f2431",
    "text": "#ecf0f4",
    "text_dim": "#cfd6df",
    "text_muted": "#aab3c2",
    "accent": "#2dd4bf",
    "accent_hover": "#5eead4",
    "accent_soft": "#99f6e4",
    "danger": "#e11d48",
    "danger_hover": "#fb2c61",
    "error": "#fb7185",
}


def _app_dark_palette() -> QtGui.QPalette:
    c = {k: QtGui.QColor(v) for k, v in THEME.items()}
    p = QtGui.QPalette()
    roles = {
        QtGui.QPalette.Window: c["bg"],
        QtGui.QPalette.WindowText: c["text"],
        QtGui.QPalette.Base: c["input"],
        QtGui.QPalette.AlternateBase: c["surface"],
        QtGui.QPalette.ToolTipBase: c["raised"],
        QtGui.QPalette.ToolTipText: c["text"],
        QtGui.QPalette.Text: c["text"],
        QtGui.QPalette.Button: c["hover"],
        QtGui.QPalette.ButtonText: c["text"],
        QtGui.QPalette.BrightText: c["error"],
        QtGui.QPalette.Highlight: c["accent"],
        QtGui.QPalette.HighlightedText: c["panel"],
    }
    for role, color in roles.items():
        p.setColor(role, color)
    return p


def _qss() -> str:
    t = THEME
    return f"""
    QWidget {{ font-size: 12px; }}

    QFrame#Sidebar {{ background: {t['panel']}; border-right: 1px solid {t['line']}; }}
    QFrame#TopBar {{ background: {t['panel']}; border-bottom: 1px solid {t['line']}; }}
    QLabel#AppTitle {{ font-size: 16px; font-weight: 700; color: {t['text']}; }}
    QLabel#TopTitle {{ font-size: 14px; font-weight: 700; color: {t['text']}; }}
    QLabel#SectionTitle, QLabel#CardTitle {{ font-weight: 700; color: {t['text_dim']}; }}

    QPushButton.NavBtn {{
        text-align: left; padding: 8px 12px; border-radius: 10px;
        border: 1px solid transparent; color: {t['text']}; background: transparent;
    }}
    QPushButton.NavBtn:hover {{ background: {t['hover']}; }}
    QPushButton.NavBtn[active="true"] {{ background: {t['raised']}; border: 1px solid {t['line_strong']}; }}

    QFrame.Card {{ background: {t['surface']}; border: 1px solid {t['line']}; border-radius: 14px; }}
    QLabel.CardValue {{ font-size: 18px; font-weight: 800; }}
    QLabel.CardLabel, QLabel#CardLabel {{ color: {t['text_muted']}; }}

    QLabel#Badge {{
        background: {t['raised']}; border: 1px solid {t['line_strong']};
        border-radius: 8px; padding: 2px 8px; color: {t['accent_soft']};
    }}
    QLabel#FieldError {{ color: {t['error']}; font-size: 11px; }}

    QLineEdit, QComboBox, QDateEdit, QSpinBox, QPlainTextEdit {{
        background: {t['input']}; border: 1px solid {t['line']};
        border-radius: 10px; padding: 6px 10px;
    }}
    QComboBox::drop-down {{ border: 0px; }}

    QPushButton.Primary, QPushButton.Danger {{
        border: 0px; padding: 8px 12px; border-radius: 10px; font-weight: 700;
    }}
    QPushButton.Primary {{ background: {t['accent']}; color: {t['panel']}; }}
    QPushButton.Primary:hover {{ background: {t['accent_hover']}; }}
    QPushButton.Danger {{ background: {t['danger']}; color: white; }}
    QPushButton.Danger:hover {{ background: {t['danger_hover']}; }}

    QTableView, QListWidget {{
        background: {t['surface']}; border: 1px solid {t['line']}; border-radius: 14px;
        gridline-color: {t['grid']};
        selection-background-color: {t['accent']}; selection-color: {t['panel']};
    }}
    QHeaderView::section {{
        background: {t['panel']}; color: {t['text_dim']};
        border: 0px; padding: 8px; font-weight: 700;
    }}
    """


class Card(QtWidgets.QFrame):
    def __init__(self, title: str, value: str = "0", *, accent: str | None = None):
        super().__init__()
        self.setProperty("class", "Card")
        self.setObjectName("Card")
        self.setFrameShape(QtWidgets.QFrame.NoFrame)

        lay = QtWidgets.QVBoxLayout(self)
        lay.setContentsMargins(16, 16, 16, 16)
        lay.setSpacing(6)

        self.lbl_value = QtWidgets.QLabel(value)
        self.lbl_value.setProperty("class", "CardValue")

        self.lbl_title = QtWidgets.QLabel(title)
        self.lbl_title.setProperty("class", "CardLabel")

        if accent:
            line = QtWidgets.QFrame()
            line.setFixedHeight(3)
            line.setStyleSheet(f"background:{accent}; border-radius:2px;")
            lay.addWidget(line)

        lay.addWidget(self.lbl_value)
        lay.addWidget(self.lbl_title)
        lay.addStretch(1)

    def set_value(self, v: str) -> None:
        self.lbl_value.setText(v)


class DashboardPage(QtWidgets.QWidget):
    ACCENTS = {
        "students": "#2dd4bf",
        "teachers": "#60a5fa",
        "parents": "#f472b6",
        "managers": "#fbbf24",
        "classes": "#a78bfa",
        "levels": "#34d399",
        "subjects": "#f87171",
    }

    def __init__(self, parent: QtWidgets.QWidget):
        super().__init__(parent)
        root = QtWidgets.QVBoxLayout(self)
        root.setContentsMargins(16, 16, 16, 16)
        root.setSpacing(14)

        self.cards: dict[str, Card] = {}
        grid = QtWidgets.QGridLayout()
        grid.setSpacing(14)
        for i, (key, accent) in enumerate(self.ACCENTS.items()):
            card = Card(key.title(), "0", accent=accent)
            self.cards[key] = card
            grid.addWidget(card, i // 4, i % 4)
        root.addLayout(grid)

        charts_row = QtWidgets.QHBoxLayout()
        charts_row.setSpacing(14)

        self.chart_people = QChartView()
        self.chart_people.setRenderHint(QtGui.QPainter.Antialiasing)
        self.chart_people.setMinimumHeight(300)
        self.chart_people.setStyleSheet("background: transparent;")

        self.chart_classes = QChartView()
        self.chart_classes.setRenderHint(QtGui.QPainter.Antialiasing)
        self.chart_classes.setMinimumHeight(300)
        self.chart_classes.setStyleSheet("background: transparent;")

        for title, view in (("People", self.chart_people), ("Students by Class", self.chart_classes)):
            wrap = QtWidgets.QFrame()
            wrap.setObjectName("Card")
            wrap.setProperty("class", "Card")
            wl = QtWidgets.QVBoxLayout(wrap)
            wl.setContentsMargins(12, 12, 12, 12)
            wl.addWidget(QtWidgets.QLabel(title))
            wl.addWidget(view)
            charts_row.addWidget(wrap, 1)

        root.addLayout(charts_row, 1)

    def set_counts(self, stats: dict[str, int]) -> None:
        for key, card in self.cards.items():
            card.set_value(str(stats.get(key, 0)))

    def set_people_chart(self, stats: dict[str, int]) -> None:
        series = QPieSeries()
        for key in ("students", "teachers", "parents", "managers"):
            sl = series.append(key.title(), max(stats.get(key, 0), 0))
            sl.setLabelVisible(True)
            sl.setLabelColor(QtGui.QColor(THEME["text"]))
            sl.setBrush(QtGui.QColor(self.ACCENTS[key]))

        chart = QChart()
        chart.addSeries(series)
        chart.setBackgroundVisible(False)
        chart.legend().setLabelColor(QtGui.QColor(THEME["text"]))
        chart.legend().setAlignment(QtCore.Qt.AlignBottom)
        self.chart_people.setChart(chart)

    def set_classes_chart(self, class_counts: dict[str, int]) -> None:
        cats = list(class_counts.keys())
        vals = [class_counts[k] for k in cats]

        barset = QBarSet("Students")
        barset.append(vals)
        barset.setColor(QtGui.QColor(THEME["accent"]))

        series = QBarSeries()
        series.append(barset)

        chart = QChart()
        chart.addSeries(series)
        chart.setBackgroundVisible(False)
        chart.legend().setVisible(False)

        axis_x = QBarCategoryAxis()
        axis_x.append(cats or ["-"])
        axis_x.setLabelsColor(QtGui.QColor(THEME["text_dim"]))
        chart.addAxis(axis_x, QtCore.Qt.AlignBottom)
        series.attachAxis(axis_x)

        axis_y = QValueAxis()
        axis_y.setLabelFormat("%d")
        axis_y.setLabelsColor(QtGui.QColor(THEME["text_dim"]))
        axis_y.setGridLineColor(QtGui.QColor(THEME["grid"]))
        chart.addAxis(axis_y, QtCore.Qt.AlignLeft)
        series.attachAxis(axis_y)

        self.chart_classes.setChart(chart)


class SearchResultsDialog(QtWidgets.QDialog):
    def __init__(self, parent: QtWidgets.QWidget, query: str, results: list[dict[str, str]]):
        super().__init__(parent)
        self.setWindowTitle(f"Search: {query}")
        self.setMinimumSize(420, 360)
        self.chosen: dict[str, str] | None = None

        root = QtWidgets.QVBoxLayout(self)
        root.addWidget(QtWidgets.QLabel(f"{len(results)} result(s)"))
        self.list = QtWidgets.QListWidget()
        for r in results:
            item = QtWidgets.QListWidgetItem(f"{r['name']}  ·  {ENTITY_LABELS[r['entity_type']]}  ·  {r['id']}")
            item.setData(QtCore.Qt.UserRole, r)
            self.list.addItem(item)
        root.addWidget(self.list, 1)

        btns = QtWidgets.QDialogButtonBox(QtWidgets.QDialogButtonBox.Open | QtWidgets.QDialogButtonBox.Close)
        btns.accepted.connect(self._on_open)
        btns.rejected.connect(self.reject)
        self.list.itemDoubleClicked.connect(lambda *_: self._on_open())
        root.addWidget(btns)

    def _on_open(self) -> None:
        item = self.list.currentItem()
        if item is None:
            return
        self.chosen = item.data(QtCore.Qt.UserRole)
        self.accept()


class MainWindow(QtWidgets.QMainWindow):
    def __init__(self, settings_store: SettingsStore | None = None):
        super().__init__()
        self.err_logger = ErrorLogger()
        self.settings_store = settings_store or SettingsStore()
        self.settings = self.settings_store.load()

        self.store = MemoryStore(
            delay_ms=self.settings.mock_delay_ms,
            id_prefixes=self.settings.id_prefixes(),
        )
        self.attendance = AttendanceService(self.store)
        self.exams = ExamService(self.store)

        self.setWindowTitle(APP_NAME)
        self.resize(1360, 820)

        self._build_ui()
        self.show_page("dashboard")

    # ---------- UI ----------
    def _build_ui(self) -> None:
        root = QtWidgets.QWidget()
        self.setCentralWidget(root)

        outer = QtWidgets.QHBoxLayout(root)
        outer.setContentsMargins(0, 0, 0, 0)
        outer.setSpacing(0)

        self.sidebar = QtWidgets.QFrame()
        self.sidebar.setObjectName("Sidebar")
        self.sidebar.setFixedWidth(220)
        sbl = QtWidgets.QVBoxLayout(self.sidebar)
        sbl.setContentsMargins(14, 14, 14, 14)
        sbl.setSpacing(6)

        title = QtWidgets.QLabel(APP_NAME)
        title.setObjectName("AppTitle")
        sbl.addWidget(title)
        sbl.addSpacing(6)

        self.nav_buttons: dict[str, QtWidgets.QPushButton] = {}

        def nav_btn(text: str, key: str) -> QtWidgets.QPushButton:
            b = QtWidgets.QPushButton(text)
            b.setProperty("class", "NavBtn")
            b.setProperty("active", "false")
            b.setCursor(QtGui.QCursor(QtCore.Qt.PointingHandCursor))
            b.setMinimumHeight(34)
            b.clicked.connect(lambda: self.show_page(key))
            self.nav_buttons[key] = b
            return b

        for key, text in PAGES:
            sbl.addWidget(nav_btn(text, key))

        sbl.addStretch(1)
        sbl.addWidget(QtWidgets.QLabel("Logs: error_log.txt"))

        self.content = QtWidgets.QFrame()
        content_lay = QtWidgets.QVBoxLayout(self.content)
        content_lay.setContentsMargins(0, 0, 0, 0)
        content_lay.setSpacing(0)

        self.topbar = QtWidgets.QFrame()
        self.topbar.setObjectName("TopBar")
        tlay = QtWidgets.QHBoxLayout(self.topbar)
        tlay.setContentsMargins(16, 12, 16, 12)
        tlay.setSpacing(10)

        self.top_title = QtWidgets.QLabel("Dashboard")
        self.top_title.setObjectName("TopTitle")
        self.global_search = QtWidgets.QLineEdit()
        self.global_search.setPlaceholderText("Search people by name or ID")
        self.global_search.setMinimumWidth(280)
        self.global_search.returnPressed.connect(self.run_global_search)

        tlay.addWidget(self.top_title)
        tlay.addStretch(1)
        tlay.addWidget(self.global_search)
        content_lay.addWidget(self.topbar)

        self.pages = QtWidgets.QStackedWidget()
        content_lay.addWidget(self.pages, 1)

        self.page_dashboard = DashboardPage(self.pages)
        self.page_widgets: dict[str, QtWidgets.QWidget] = {"dashboard": self.page_dashboard}
        for et in ENTITY_TYPES:
            self.page_widgets[et] = EntityPage(self.pages, self, et)
        for kind in (CLASS, LEVEL, SUBJECT):
            self.page_widgets[kind] = CatalogPage(self.pages, self, kind)
        self.page_widgets["attendance"] = AttendancePage(self.pages, self)
        self.page_widgets["bank"] = QuestionBankPage(self.pages, self)
        self.page_widgets["exams"] = ExamsPage(self.pages, self)
        self.page_widgets["settings"] = SettingsPage(self.pages, self)
        for key, _ in PAGES:
            self.pages.addWidget(self.page_widgets[key])

        outer.addWidget(self.sidebar)
        outer.addWidget(self.content, 1)

        self.statusBar().showMessage("Ready")

    # ---------- Feedback ----------
    def notify(self, message: str, timeout_ms: int = 4000) -> None:
        self.statusBar().showMessage(message, timeout_ms)

    def _show_error(self, title: str, exc: BaseException) -> None:
        QtWidgets.QMessageBox.critical(self, title, str(exc))

    def report(self, exc: BaseException, context: str, title: str) -> None:
        """Slot-boundary error handling: expected failures notify, the rest are logged."""
        if isinstance(exc, ValidationError):
            self.notify(f"{title}: {'; '.join(exc.errors.values())}", 6000)
            return
        if isinstance(exc, SchoolDeskError):
            self.notify(f"{title}: {exc}", 6000)
            return
        self.err_logger.log_exception(exc, context)
        self._show_error(title, exc)

    # ---------- Navigation ----------
    def show_page(self, key: str) -> None:
        titles = dict(PAGES)
        if key not in titles:
            key = "dashboard"
        self.pages.setCurrentWidget(self.page_widgets[key])
        self.top_title.setText(titles[key])

        for k, b in self.nav_buttons.items():
            b.setProperty("active", "true" if k == key else "false")
            b.style().unpolish(b)
            b.style().polish(b)

        self.refresh_page(key)

    def refresh_page(self, key: str) -> None:
        if key == "dashboard":
            self.refresh_dashboard()
            return
        page = self.page_widgets[key]
        if key == "attendance":
            page.refresh(reload_people=True)
        else:
            page.refresh()

    def refresh_pages(self) -> None:
        """Reload the visible page after a change other pages depend on."""
        key = next((k for k, w in self.page_widgets.items() if w is self.pages.currentWidget()), "dashboard")
        if key != "settings":
            self.refresh_page(key)

    def refresh_dashboard(self) -> None:
        try:
            stats = self.store.dashboard_stats()
            self.page_dashboard.set_counts(stats)
            self.page_dashboard.set_people_chart(stats)
            # Keep the ten largest classes for a readable chart.
            items = sorted(self.store.students_by_class().items(), key=lambda kv: (-kv[1], kv[0]))[:10]
            self.page_dashboard.set_classes_chart(dict(items))
        except Exception as e:
            self.err_logger.log_exception(e, "qt_refresh_dashboard")

    # ---------- Search / detail ----------
    def run_global_search(self) -> None:
        try:
            query = self.global_search.text().strip()
            if not query:
                return
            results = self.store.global_search(query)
            if not results:
                self.notify(f"No results for '{query}'")
                return
            dlg = SearchResultsDialog(self, query, results)
            if dlg.exec() == QtWidgets.QDialog.Accepted and dlg.chosen:
                self.open_detail(dlg.chosen["entity_type"], dlg.chosen["id"])
        except Exception as e:
            self.report(e, "qt_global_search", "Search failed")

    def open_detail(self, entity_type: str, record_id: str) -> None:
        try:
            DetailDialog(self, self, entity_type, record_id).exec()
        except Exception as e:
            self.report(e, f"qt_detail_{entity_type}", f"Open {ENTITY_LABELS[entity_type].lower()} failed")

    # ---------- Settings ----------
    def apply_settings(self, settings: Settings) -> None:
        self.settings_store.save(settings)
        self.settings = settings
        self.store.configure(delay_ms=settings.mock_delay_ms, id_prefixes=settings.id_prefixes())


def run_qt_app() -> None:
    app = QtWidgets.QApplication([])
    app.setApplicationName(APP_NAME)
    app.setStyle("Fusion")
    app.setPalette(_app_dark_palette())
    app.setStyleSheet(_qss())

    w = MainWindow()
    w.show()
    app.exec()

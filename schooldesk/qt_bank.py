"""Qt pages for the question bank and exams."""
from __future__ import annotations

from typing import Any

from PySide6 import QtCore, QtWidgets

from .constants import STUDENT
from .exams import DIFFICULTIES, QUESTION_TYPES, TRUE_FALSE_OPTIONS, ExamConfig
from .qt_common import (
    CheckList,
    Column,
    RecordFilterProxyModel,
    RecordTableModel,
    button,
    fill_combo,
    make_table_view,
    selected_row,
    text_column,
    tool_card,
)
from .storage import LEVEL, SUBJECT, full_name

MAX_OPTIONS = 6


def _catalog_names(store, kind: str) -> dict[str, str]:
    return {r["id"]: r["name"] for r in store.list_catalog(kind)}


class NameDialog(QtWidgets.QDialog):
    """Single required name plus optional extra rows (used for units and lessons)."""

    def __init__(self, parent: QtWidgets.QWidget, title: str, units: dict[str, str] | None = None):
        super().__init__(parent)
        self.setWindowTitle(title)
        self.setModal(True)
        self.setMinimumWidth(380)
        root = QtWidgets.QVBoxLayout(self)
        form = QtWidgets.QFormLayout()
        self.name = QtWidgets.QLineEdit()
        form.addRow("Name *", self.name)

        self.description: QtWidgets.QPlainTextEdit | None = None
        self.unit: QtWidgets.QComboBox | None = None
        if units is not None:
            self.description = QtWidgets.QPlainTextEdit()
            self.description.setFixedHeight(64)
            self.unit = QtWidgets.QComboBox()
            fill_combo(self.unit, units.items(), first="(No unit)")
            form.addRow("Description", self.description)
            form.addRow("Unit", self.unit)
        root.addLayout(form)

        btns = QtWidgets.QDialogButtonBox(QtWidgets.QDialogButtonBox.Ok | QtWidgets.QDialogButtonBox.Cancel)
        btns.accepted.connect(self._on_ok)
        btns.rejected.connect(self.reject)
        root.addWidget(btns)

    def _on_ok(self) -> None:
        if not self.name.text().strip():
            QtWidgets.QMessageBox.warning(self, "Validation", "Name is required.")
            return
        self.accept()

    def get_data(self) -> dict[str, Any]:
        d: dict[str, Any] = {"name": self.name.text().strip()}
        if self.description is not None:
            d["description"] = self.description.toPlainText().strip()
        if self.unit is not None:
            d["unit_id"] = self.unit.currentData() or ""
        return d


class QuestionDialog(QtWidgets.QDialog):
    def __init__(self, parent: QtWidgets.QWidget, lesson_name: str):
        super().__init__(parent)
        self.setWindowTitle(f"Add question: {lesson_name}")
        self.setModal(True)
        self.setMinimumWidth(520)

        root = QtWidgets.QVBoxLayout(self)
        form = QtWidgets.QFormLayout()
        self.text = QtWidgets.QPlainTextEdit()
        self.text.setFixedHeight(70)
        self.type = QtWidgets.QComboBox()
        self.type.addItem("Multiple choice", "multiple_choice")
        self.type.addItem("True / False", "true_false")
        self.difficulty = QtWidgets.QComboBox()
        for d in DIFFICULTIES:
            self.difficulty.addItem(d.title(), d)
        form.addRow("Question *", self.text)
        form.addRow("Type", self.type)
        form.addRow("Difficulty", self.difficulty)
        root.addLayout(form)

        root.addWidget(QtWidgets.QLabel("Options (mark the correct one)"))
        self.group = QtWidgets.QButtonGroup(self)
        self.option_edits: list[QtWidgets.QLineEdit] = []
        grid = QtWidgets.QGridLayout()
        for i in range(MAX_OPTIONS):
            radio = QtWidgets.QRadioButton()
            edit = QtWidgets.QLineEdit()
            edit.setPlaceholderText(f"Option {i + 1}")
            self.group.addButton(radio, i)
            self.option_edits.append(edit)
            grid.addWidget(radio, i, 0)
            grid.addWidget(edit, i, 1)
        self.group.button(0).setChecked(True)
        root.addLayout(grid)

        self.type.currentIndexChanged.connect(self._on_type_changed)

        btns = QtWidgets.QDialogButtonBox(QtWidgets.QDialogButtonBox.Ok | QtWidgets.QDialogButtonBox.Cancel)
        btns.accepted.connect(self._on_ok)
        btns.rejected.connect(self.reject)
        root.addWidget(btns)

    def _on_type_changed(self) -> None:
        tf = self.type.currentData() == "true_false"
        for i, edit in enumerate(self.option_edits):
            if tf:
                edit.setText(TRUE_FALSE_OPTIONS[i] if i < len(TRUE_FALSE_OPTIONS) else "")
            edit.setReadOnly(tf)
            edit.setVisible(not tf or i < len(TRUE_FALSE_OPTIONS))
            self.group.button(i).setVisible(not tf or i < len(TRUE_FALSE_OPTIONS))

    def _on_ok(self) -> None:
        if not self.text.toPlainText().strip():
            QtWidgets.QMessageBox.warning(self, "Validation", "Question text is required.")
            return
        if not self.option_edits[self.group.checkedId()].text().strip():
            QtWidgets.QMessageBox.warning(self, "Validation", "The correct answer cannot be empty.")
            return
        self.accept()

    def get_data(self) -> dict[str, Any]:
        options = []
        correct_index = 0
        for i, edit in enumerate(self.option_edits):
            text = edit.text().strip()
            if not text:
                continue
            if i == self.group.checkedId():
                correct_index = len(options)
            options.append({"text": text})
        return {
            "text": self.text.toPlainText().strip(),
            "type": self.type.currentData() or QUESTION_TYPES[1],
            "difficulty": self.difficulty.currentData() or DIFFICULTIES[0],
            "options": options,
            "correct_index": correct_index,
        }


class QuestionBankPage(QtWidgets.QWidget):
    """Units and lessons for a subject/level, and the questions of one lesson."""

    def __init__(self, parent: QtWidgets.QWidget, main_window):
        super().__init__(parent)
        self.main_window = main_window
        self.units: dict[str, str] = {}

        root = QtWidgets.QVBoxLayout(self)
        root.setContentsMargins(16, 16, 16, 16)
        root.setSpacing(12)

        filters, fly = tool_card()
        self.subject = QtWidgets.QComboBox()
        self.level = QtWidgets.QComboBox()
        self.unit = QtWidgets.QComboBox()
        fly.addWidget(QtWidgets.QLabel("Subject:"))
        fly.addWidget(self.subject, 1)
        fly.addWidget(QtWidgets.QLabel("Level:"))
        fly.addWidget(self.level, 1)
        fly.addWidget(QtWidgets.QLabel("Unit:"))
        fly.addWidget(self.unit, 1)
        self.btn_add_unit = button("Add Unit")
        self.btn_del_unit = button("Delete Unit", "Danger")
        fly.addWidget(self.btn_add_unit)
        fly.addWidget(self.btn_del_unit)
        root.addWidget(filters)

        split = QtWidgets.QSplitter(QtCore.Qt.Horizontal)

        left = QtWidgets.QFrame()
        left.setObjectName("Card")
        left.setProperty("class", "Card")
        lly = QtWidgets.QVBoxLayout(left)
        t = QtWidgets.QLabel("Lessons")
        t.setObjectName("CardTitle")
        lly.addWidget(t)
        self.lessons = QtWidgets.QListWidget()
        self.lessons.setDragDropMode(QtWidgets.QAbstractItemView.InternalMove)
        lly.addWidget(self.lessons, 1)
        row = QtWidgets.QHBoxLayout()
        self.btn_add_lesson = button("Add Lesson", "Primary")
        self.btn_del_lesson = button("Delete", "Danger")
        row.addWidget(self.btn_add_lesson)
        row.addWidget(self.btn_del_lesson)
        lly.addLayout(row)
        split.addWidget(left)

        right = QtWidgets.QWidget()
        rly = QtWidgets.QVBoxLayout(right)
        rly.setContentsMargins(0, 0, 0, 0)
        qtools, qly = tool_card()
        self.search = QtWidgets.QLineEdit()
        self.search.setPlaceholderText("Search questions")
        self.difficulty = QtWidgets.QComboBox()
        self.difficulty.addItem("All difficulties", "")
        for d in DIFFICULTIES:
            self.difficulty.addItem(d.title(), d)
        self.btn_add_q = button("Add Question", "Primary")
        self.btn_del_q = button("Delete", "Danger")
        qly.addWidget(self.search, 2)
        qly.addWidget(self.difficulty)
        qly.addWidget(self.btn_add_q)
        qly.addWidget(self.btn_del_q)
        rly.addWidget(qtools)

        self.table = make_table_view()
        self.table.setEditTriggers(QtWidgets.QAbstractItemView.NoEditTriggers)
        self.model = RecordTableModel([
            text_column("ID", "id"),
            text_column("Question", "text"),
            Column("Type", lambda r: "True / False" if r.get("type") == "true_false" else "Multiple choice"),
            Column("Difficulty", lambda r: str(r.get("difficulty", "")).title()),
            Column("Answer", lambda r: next((o["text"] for o in r.get("options", []) if o["id"] == r.get("correct_answer_id")), "")),
        ])
        self.proxy = RecordFilterProxyModel()
        self.proxy.setSourceModel(self.model)
        self.table.setModel(self.proxy)
        rly.addWidget(self.table, 1)
        split.addWidget(right)
        split.setStretchFactor(1, 2)
        root.addWidget(split, 1)

        self.subject.currentIndexChanged.connect(lambda *_: self._reload_units())
        self.level.currentIndexChanged.connect(lambda *_: self._reload_units())
        self.unit.currentIndexChanged.connect(lambda *_: self._reload_lessons())
        self.lessons.currentItemChanged.connect(lambda *_: self._reload_questions())
        self.lessons.model().rowsMoved.connect(lambda *_: self._on_lessons_moved())
        self.search.textChanged.connect(lambda t: self.proxy.set_filters(search=t))
        self.difficulty.currentIndexChanged.connect(lambda *_: self._reload_questions())
        self.btn_add_unit.clicked.connect(self.add_unit)
        self.btn_del_unit.clicked.connect(self.delete_unit)
        self.btn_add_lesson.clicked.connect(self.add_lesson)
        self.btn_del_lesson.clicked.connect(self.delete_lesson)
        self.btn_add_q.clicked.connect(self.add_question)
        self.btn_del_q.clicked.connect(self.delete_question)

    @property
    def exams(self):
        return self.main_window.exams

    def refresh(self) -> None:
        try:
            store = self.main_window.store
            fill_combo(self.subject, _catalog_names(store, SUBJECT).items(), current=self.subject.currentData() or "")
            fill_combo(self.level, _catalog_names(store, LEVEL).items(), current=self.level.currentData() or "")
            self._reload_units()
        except Exception as e:
            self.main_window.report(e, "qt_refresh_bank", "Load question bank failed")

    def _scope(self) -> tuple[str, str]:
        return self.subject.currentData() or "", self.level.currentData() or ""

    def _reload_units(self) -> None:
        subject_id, level_id = self._scope()
        units = self.exams.list_units(subject_id, level_id) if subject_id and level_id else []
        self.units = {u["id"]: u["name"] for u in units}
        fill_combo(self.unit, self.units.items(), first="(All units)", current=self.unit.currentData() or "")
        self._reload_lessons()

    def _reload_lessons(self) -> None:
        subject_id, level_id = self._scope()
        keep = self._lesson_id()
        self.lessons.blockSignals(True)
        self.lessons.clear()
        if subject_id and level_id:
            result = self.exams.list_lessons(
                page=1, limit=1000, subject_id=subject_id, level_id=level_id, unit_id=self.unit.currentData() or ""
            )
            for lesson in result.items:
                unit = self.units.get(lesson["unit_id"], "")
                item = QtWidgets.QListWidgetItem(f"{lesson['name']}  ({unit})" if unit else lesson["name"])
                item.setData(QtCore.Qt.UserRole, lesson["id"])
                item.setToolTip(lesson.get("description", ""))
                self.lessons.addItem(item)
                if lesson["id"] == keep:
                    self.lessons.setCurrentItem(item)
        self.lessons.blockSignals(False)
        if self.lessons.currentItem() is None and self.lessons.count():
            self.lessons.setCurrentRow(0)
        self._reload_questions()

    def _lesson_id(self) -> str:
        item = self.lessons.currentItem()
        return item.data(QtCore.Qt.UserRole) if item is not None else ""

    def _reload_questions(self) -> None:
        lesson_id = self._lesson_id()
        rows: list[dict[str, Any]] = []
        if lesson_id:
            rows = self.exams.list_questions(
                page=1, limit=1000, lesson_id=lesson_id, difficulty=self.difficulty.currentData() or ""
            ).items
        self.model.set_rows(rows)
        self.proxy.set_filters(search=self.search.text())

    def _on_lessons_moved(self) -> None:
        try:
            ids = [self.lessons.item(i).data(QtCore.Qt.UserRole) for i in range(self.lessons.count())]
            self.exams.reorder_lessons(ids)
            self.main_window.notify("Lesson order saved")
        except Exception as e:
            self.main_window.report(e, "qt_reorder_lessons", "Reorder failed")

    def add_unit(self) -> None:
        try:
            subject_id, level_id = self._scope()
            dlg = NameDialog(self, "Add Unit")
            if dlg.exec() != QtWidgets.QDialog.Accepted:
                return
            unit = self.exams.create_unit(dict(dlg.get_data(), subject_id=subject_id, level_id=level_id))
            self._reload_units()
            self.main_window.notify(f"Unit created: {unit['name']}")
        except Exception as e:
            self.main_window.report(e, "qt_add_unit", "Add unit failed")

    def delete_unit(self) -> None:
        try:
            unit_id = self.unit.currentData() or ""
            if not unit_id:
                return
            msg = f"Delete unit {self.units.get(unit_id, unit_id)}? Its lessons are kept without a unit."
            if QtWidgets.QMessageBox.question(self, "Confirm", msg) != QtWidgets.QMessageBox.Yes:
                return
            self.exams.delete_unit(unit_id)
            self._reload_units()
        except Exception as e:
            self.main_window.report(e, "qt_delete_unit", "Delete unit failed")

    def add_lesson(self) -> None:
        try:
            subject_id, level_id = self._scope()
            dlg = NameDialog(self, "Add Lesson", units=self.units)
            if dlg.exec() != QtWidgets.QDialog.Accepted:
                return
            lesson = self.exams.create_lesson(dict(dlg.get_data(), subject_id=subject_id, level_id=level_id))
            self._reload_lessons()
            self.main_window.notify(f"Lesson created: {lesson['name']}")
        except Exception as e:
            self.main_window.report(e, "qt_add_lesson", "Add lesson failed")

    def delete_lesson(self) -> None:
        try:
            lesson_id = self._lesson_id()
            if not lesson_id:
                return
            msg = "Delete this lesson and all of its questions?"
            if QtWidgets.QMessageBox.question(self, "Confirm", msg) != QtWidgets.QMessageBox.Yes:
                return
            self.exams.delete_lesson(lesson_id)
            self._reload_lessons()
        except Exception as e:
            self.main_window.report(e, "qt_delete_lesson", "Delete lesson failed")

    def add_question(self) -> None:
        try:
            lesson_id = self._lesson_id()
            if not lesson_id:
                self.main_window.notify("Select a lesson first")
                return
            dlg = QuestionDialog(self, self.lessons.currentItem().text())
            if dlg.exec() != QtWidgets.QDialog.Accepted:
                return
            self.exams.create_question(dict(dlg.get_data(), lesson_id=lesson_id))
            self._reload_questions()
            self.main_window.notify("Question added")
        except Exception as e:
            self.main_window.report(e, "qt_add_question", "Add question failed")

    def delete_question(self) -> None:
        try:
            row = selected_row(self.table, self.proxy, self.model)
            if not row:
                return
            if QtWidgets.QMessageBox.question(self, "Confirm", f"Delete question {row['id']}?") != QtWidgets.QMessageBox.Yes:
                return
            self.exams.delete_question(row["id"])
            self._reload_questions()
        except Exception as e:
            self.main_window.report(e, "qt_delete_question", "Delete question failed")


class GenerateExamDialog(QtWidgets.QDialog):
    def __init__(self, parent: QtWidgets.QWidget, main_window):
        super().__init__(parent)
        self.exams = main_window.exams
        store = main_window.store
        self.setWindowTitle("Generate Exam")
        self.setModal(True)
        self.setMinimumWidth(560)

        root = QtWidgets.QVBoxLayout(self)
        form = QtWidgets.QFormLayout()
        self.name = QtWidgets.QLineEdit()
        self.subject = QtWidgets.QComboBox()
        fill_combo(self.subject, _catalog_names(store, SUBJECT).items())
        self.level = QtWidgets.QComboBox()
        fill_combo(self.level, _catalog_names(store, LEVEL).items())
        self.lessons = CheckList()
        self.mode = QtWidgets.QComboBox()
        self.mode.addItem("Automatic (by difficulty)", "auto")
        self.mode.addItem("Manual selection", "manual")
        self.max_score = QtWidgets.QSpinBox()
        self.max_score.setRange(1, 1000)
        self.max_score.setValue(100)

        form.addRow("Name *", self.name)
        form.addRow("Subject", self.subject)
        form.addRow("Level", self.level)
        form.addRow("Lessons *", self.lessons)
        form.addRow("Mode", self.mode)
        form.addRow("Max score", self.max_score)

        self.counts: dict[str, QtWidgets.QSpinBox] = {}
        self.auto_box = QtWidgets.QWidget()
        aly = QtWidgets.QHBoxLayout(self.auto_box)
        aly.setContentsMargins(0, 0, 0, 0)
        for d in DIFFICULTIES:
            sb = QtWidgets.QSpinBox()
            sb.setRange(0, 100)
            self.counts[d] = sb
            aly.addWidget(QtWidgets.QLabel(d.title()))
            aly.addWidget(sb)
        self.counts["easy"].setValue(2)
        form.addRow("Questions", self.auto_box)

        self.questions = CheckList(height=160)
        self.questions.setVisible(False)
        form.addRow("", self.questions)
        root.addLayout(form)

        self.subject.currentIndexChanged.connect(lambda *_: self._reload_lessons())
        self.level.currentIndexChanged.connect(lambda *_: self._reload_lessons())
        self.lessons.itemChanged.connect(lambda *_: self._reload_questions())
        self.mode.currentIndexChanged.connect(lambda *_: self._on_mode())

        btns = QtWidgets.QDialogButtonBox(QtWidgets.QDialogButtonBox.Ok | QtWidgets.QDialogButtonBox.Cancel)
        btns.accepted.connect(self._on_ok)
        btns.rejected.connect(self.reject)
        root.addWidget(btns)
        self._reload_lessons()

    def _reload_lessons(self) -> None:
        subject_id = self.subject.currentData() or ""
        level_id = self.level.currentData() or ""
        lessons = self.exams.lessons_for(subject_id, level_id) if subject_id and level_id else []
        self.lessons.blockSignals(True)
        self.lessons.set_choices((l["id"], l["name"]) for l in lessons)
        self.lessons.blockSignals(False)
        self._reload_questions()

    def _reload_questions(self) -> None:
        keep = self.questions.checked_ids()
        pool = self.exams.questions_for_lessons(self.lessons.checked_ids())
        self.questions.set_choices(((q["id"], f"[{q['difficulty']}] {q['text']}") for q in pool), keep)

    def _on_mode(self) -> None:
        manual = self.mode.currentData() == "manual"
        self.auto_box.setVisible(not manual)
        self.questions.setVisible(manual)

    def _on_ok(self) -> None:
        if not self.name.text().strip():
            QtWidgets.QMessageBox.warning(self, "Validation", "Name is required.")
            return
        if not self.lessons.checked_ids():
            QtWidgets.QMessageBox.warning(self, "Validation", "Select at least one lesson.")
            return
        if self.mode.currentData() == "manual" and not self.questions.checked_ids():
            QtWidgets.QMessageBox.warning(self, "Validation", "Select at least one question.")
            return
        self.accept()

    def get_config(self) -> ExamConfig:
        return ExamConfig(
            name=self.name.text().strip(),
            level_id=self.level.currentData() or "",
            subject_id=self.subject.currentData() or "",
            lesson_ids=self.lessons.checked_ids(),
            mode=self.mode.currentData() or "auto",
            max_score=self.max_score.value(),
            easy_count=self.counts["easy"].value(),
            medium_count=self.counts["medium"].value(),
            hard_count=self.counts["hard"].value(),
            question_ids=self.questions.checked_ids(),
        )


class TakeExamDialog(QtWidgets.QDialog):
    def __init__(self, parent: QtWidgets.QWidget, exam: dict[str, Any], questions: list[dict[str, Any]], students: dict[str, str]):
        super().__init__(parent)
        self.setWindowTitle(f"Take exam: {exam['name']}")
        self.setModal(True)
        self.setMinimumSize(560, 520)

        root = QtWidgets.QVBoxLayout(self)
        top = QtWidgets.QFormLayout()
        self.student = QtWidgets.QComboBox()
        fill_combo(self.student, students.items())
        top.addRow("Student", self.student)
        root.addLayout(top)

        scroll = QtWidgets.QScrollArea()
        scroll.setWidgetResizable(True)
        body = QtWidgets.QWidget()
        bly = QtWidgets.QVBoxLayout(body)
        self.groups: dict[str, QtWidgets.QButtonGroup] = {}
        self.option_ids: dict[str, list[str]] = {}
        for n, q in enumerate(questions, start=1):
            box = QtWidgets.QGroupBox(f"{n}. {q['text']}")
            gly = QtWidgets.QVBoxLayout(box)
            group = QtWidgets.QButtonGroup(self)
            for i, opt in enumerate(q.get("options", [])):
                radio = QtWidgets.QRadioButton(opt["text"])
                group.addButton(radio, i)
                gly.addWidget(radio)
            self.groups[q["id"]] = group
            self.option_ids[q["id"]] = [o["id"] for o in q.get("options", [])]
            bly.addWidget(box)
        if not questions:
            bly.addWidget(QtWidgets.QLabel("This exam has no questions."))
        bly.addStretch(1)
        scroll.setWidget(body)
        root.addWidget(scroll, 1)

        btns = QtWidgets.QDialogButtonBox(QtWidgets.QDialogButtonBox.Ok | QtWidgets.QDialogButtonBox.Cancel)
        btns.button(QtWidgets.QDialogButtonBox.Ok).setText("Submit")
        btns.accepted.connect(self._on_ok)
        btns.rejected.connect(self.reject)
        root.addWidget(btns)

    def _on_ok(self) -> None:
        if not self.student.currentData():
            QtWidgets.QMessageBox.warning(self, "Validation", "Select a student.")
            return
        self.accept()

    def student_id(self) -> str:
        return self.student.currentData() or ""

    def answers(self) -> dict[str, str]:
        out: dict[str, str] = {}
        for qid, group in self.groups.items():
            idx = group.checkedId()
            if idx >= 0:
                out[qid] = self.option_ids[qid][idx]
        return out


class ExamsPage(QtWidgets.QWidget):
    def __init__(self, parent: QtWidgets.QWidget, main_window):
        super().__init__(parent)
        self.main_window = main_window
        self.names: dict[str, dict[str, str]] = {SUBJECT: {}, LEVEL: {}}

        root = QtWidgets.QVBoxLayout(self)
        root.setContentsMargins(16, 16, 16, 16)
        root.setSpacing(12)

        tools, tlay = tool_card()
        self.search = QtWidgets.QLineEdit()
        self.search.setPlaceholderText("Search exams")
        self.btn_generate = button("Generate Exam", "Primary")
        self.btn_take = button("Take")
        self.btn_attempts = button("Results")
        self.btn_del = button("Delete", "Danger")
        tlay.addWidget(self.search, 2)
        tlay.addStretch(1)
        for b in (self.btn_generate, self.btn_take, self.btn_attempts, self.btn_del):
            tlay.addWidget(b)
        root.addWidget(tools)

        self.table = make_table_view()
        self.table.setEditTriggers(QtWidgets.QAbstractItemView.NoEditTriggers)
        self.model = RecordTableModel([
            text_column("ID", "id"),
            text_column("Name", "name"),
            Column("Subject", lambda r: self.names[SUBJECT].get(r.get("subject_id", ""), "")),
            Column("Level", lambda r: self.names[LEVEL].get(r.get("level_id", ""), "")),
            Column("Questions", lambda r: len(r.get("question_ids", []))),
            text_column("Max score", "max_score"),
            text_column("Status", "status"),
            text_column("Created", "created_at"),
        ])
        self.proxy = RecordFilterProxyModel()
        self.proxy.setSourceModel(self.model)
        self.table.setModel(self.proxy)
        root.addWidget(self.table, 1)

        self.search.textChanged.connect(lambda t: self.proxy.set_filters(search=t))
        self.btn_generate.clicked.connect(self.generate)
        self.btn_take.clicked.connect(self.take)
        self.btn_attempts.clicked.connect(self.show_attempts)
        self.btn_del.clicked.connect(self.delete_exam)

    def refresh(self) -> None:
        try:
            store = self.main_window.store
            self.names = {SUBJECT: _catalog_names(store, SUBJECT), LEVEL: _catalog_names(store, LEVEL)}
            self.model.set_rows(self.main_window.exams.list_exams(page=1, limit=1000).items)
            self.proxy.set_filters(search=self.search.text())
        except Exception as e:
            self.main_window.report(e, "qt_refresh_exams", "Load exams failed")

    def _selected(self) -> dict[str, Any] | None:
        return selected_row(self.table, self.proxy, self.model)

    def generate(self) -> None:
        try:
            dlg = GenerateExamDialog(self, self.main_window)
            if dlg.exec() != QtWidgets.QDialog.Accepted:
                return
            exam = self.main_window.exams.generate(dlg.get_config())
            self.refresh()
            self.main_window.notify(f"Exam generated with {len(exam['question_ids'])} questions")
        except Exception as e:
            self.main_window.report(e, "qt_generate_exam", "Generate exam failed")

    def take(self) -> None:
        try:
            exam = self._selected()
            if not exam:
                return
            svc = self.main_window.exams
            students = {s["id"]: full_name(s) for s in self.main_window.store.list_entities(STUDENT)}
            dlg = TakeExamDialog(self, exam, svc.exam_questions(exam["id"]), students)
            if dlg.exec() != QtWidgets.QDialog.Accepted:
                return
            attempt = svc.submit_attempt(exam["id"], dlg.student_id(), dlg.answers())
            QtWidgets.QMessageBox.information(
                self, "Result", f"Score: {attempt['score']} / {attempt['total_questions']}"
            )
        except Exception as e:
            self.main_window.report(e, "qt_take_exam", "Submit exam failed")

    def show_attempts(self) -> None:
        try:
            exam = self._selected()
            if not exam:
                return
            students = {s["id"]: full_name(s) for s in self.main_window.store.list_entities(STUDENT)}
            model = RecordTableModel(
                [
                    text_column("ID", "id"),
                    Column("Student", lambda r: students.get(r.get("student_id", ""), r.get("student_id", ""))),
                    Column("Score", lambda r: f"{r['score']} / {r['total_questions']}"),
                    text_column("Completed", "completed_at"),
                ],
                self.main_window.exams.attempts_for(exam["id"]),
            )
            dlg = QtWidgets.QDialog(self)
            dlg.setWindowTitle(f"Results: {exam['name']}")
            dlg.setMinimumSize(520, 360)
            lay = QtWidgets.QVBoxLayout(dlg)
            view = make_table_view()
            view.setEditTriggers(QtWidgets.QAbstractItemView.NoEditTriggers)
            view.setModel(model)
            lay.addWidget(view, 1)
            btns = QtWidgets.QDialogButtonBox(QtWidgets.QDialogButtonBox.Close)
            btns.rejected.connect(dlg.reject)
            lay.addWidget(btns)
            dlg.exec()
        except Exception as e:
            self.main_window.report(e, "qt_exam_results", "Load results failed")

    def delete_exam(self) -> None:
        try:
            exam = self._selected()
            if not exam:
                return
            if QtWidgets.QMessageBox.question(self, "Confirm", f"Delete exam {exam['name']}?") != QtWidgets.QMessageBox.Yes:
                return
            self.main_window.exams.delete_exam(exam["id"])
            self.refresh()
        except Exception as e:
            self.main_window.report(e, "qt_delete_exam", "Delete exam failed")

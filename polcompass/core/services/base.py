from firebase_admin import firestore
from google.cloud.firestore import FieldFilter


class BaseFirestoreService:
    def __init__(self):
        # Client is created on first use; the app is initialized in settings.py
        self._db = None

    @property
    def db(self):
        if self._db is None:
            self._db = firestore.client()
        return self._db

    def get_collection(self, collection_name, limit=None):
        ref = self.db.collection(collection_name)
        if limit:
            ref = ref.limit(limit)
        docs = ref.stream()
        return [{**doc.to_dict(), 'id': doc.id} for doc in docs]

    def query_collection(self, collection_name, field, op, value, limit=None):
        query = self.db.collection(collection_name).where(filter=FieldFilter(field, op, value))
        if limit:
            query = query.limit(limit)
        return [{**doc.to_dict(), 'id': doc.id} for doc in query.stream()]

    def get_document(self, collection_name, doc_id):
        doc_ref = self.db.collection(collection_name).document(doc_id)
        doc = doc_ref.get()
        if doc.exists:
            return {**doc.to_dict(), 'id': doc.id}
        return None

    def create_document(self, collection_name, data, doc_id=None):
        if doc_id:
            self.db.collection(collection_name).document(doc_id).set(data)
            return doc_id
        else:
            update_time, doc_ref = self.db.collection(collection_name).add(data)
            return doc_ref.id

    def set_document(self, collection_name, doc_id, data, merge=False):
        self.db.collection(collection_name).document(doc_id).set(data, merge=merge)

    def update_document(self, collection_name, doc_id, data):
        doc_ref = self.db.collection(collection_name).document(doc_id)
        doc_ref.update(data)

    def delete_document(self, collection_name, doc_id):
        self.db.collection(collection_name).document(doc_id).delete()
